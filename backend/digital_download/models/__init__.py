from .asset import Asset, Volume
from .download_log import DownloadLog
from .token import Token
from .user import User, UserGroup, user_group_members

__all__ = ["Asset", "DownloadLog", "Token", "User", "UserGroup", "Volume", "user_group_members"]
