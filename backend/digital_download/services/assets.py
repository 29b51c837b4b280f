from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from digital_download.core.minio_client import presigned_download_url
from digital_download.models.asset import FS_MINIO, Asset


async def get_asset(db: AsyncSession, asset_id: int | None) -> Asset | None:
    if asset_id is None:
        return None
    res = await db.execute(select(Asset).where(Asset.id == asset_id))
    return res.scalars().first()


def asset_key(asset: Asset) -> str:
    folder = (asset.folder_path or "").strip("/")
    return f"{folder}/{asset.filename}" if folder else asset.filename


def public_url(asset: Asset) -> str | None:
    """Publicly retrievable address of a non-local asset, if it has one."""
    if asset.url:
        return asset.url

    volume = asset.volume
    if volume is None:
        return None
    if volume.url:
        return f"{volume.url.rstrip('/')}/{asset_key(asset)}"
    if volume.fs_type == FS_MINIO and volume.bucket:
        return presigned_download_url(volume.bucket, asset_key(asset))
    return None
