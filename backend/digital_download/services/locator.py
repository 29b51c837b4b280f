from __future__ import annotations

import os
import re
from dataclasses import dataclass

from digital_download.errors import AssetMissing, CloudUrlMissing
from digital_download.models.asset import Asset
from digital_download.services.assets import public_url


@dataclass(frozen=True)
class LocalFile:
    path: str


@dataclass(frozen=True)
class RemoteFile:
    url: str


def local_path(volume_path: str, folder_path: str, filename: str) -> str:
    # Volume paths may be configured as "$STORAGE_ROOT/uploads".
    base = os.path.expandvars(volume_path or "")
    directory = re.sub(r"/+", "/", f"{base}/{folder_path or ''}/")
    return directory + filename


def encode_spaces(url: str) -> str:
    return url.replace(" ", "%20")


def locate(asset: Asset | None) -> LocalFile | RemoteFile:
    """Resolve where the bytes of ``asset`` can be read from."""
    if asset is None:
        raise AssetMissing()

    volume = asset.volume
    if volume is not None and volume.is_local:
        return LocalFile(local_path(volume.path, asset.folder_path, asset.filename))

    url = public_url(asset)
    if not url:
        raise CloudUrlMissing()
    return RemoteFile(encode_spaces(url))
