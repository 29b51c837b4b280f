from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from digital_download.core.database import Base, UTCDateTime, utcnow

FS_LOCAL = "local"
FS_REMOTE = "remote"
FS_MINIO = "minio"


class Volume(Base):
    __tablename__ = "volumes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    handle = Column(String, unique=True, index=True, nullable=False)
    fs_type = Column(String, nullable=False, default=FS_LOCAL)
    # Local base directory; may reference environment variables ($VAR / ${VAR}).
    path = Column(String, nullable=True)
    # Public base URL for remote volumes.
    url = Column(String, nullable=True)
    bucket = Column(String, nullable=True)

    assets = relationship("Asset", back_populates="volume")

    @property
    def is_local(self) -> bool:
        return self.fs_type == FS_LOCAL


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    volume_id = Column(Integer, ForeignKey("volumes.id"), nullable=False, index=True)
    folder_path = Column(String, nullable=False, default="")
    filename = Column(String, nullable=False)
    size = Column(BigInteger, nullable=True)
    url = Column(String, nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow)

    volume = relationship("Volume", back_populates="assets", lazy="joined")
