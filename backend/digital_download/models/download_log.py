from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from digital_download.core.database import Base, UTCDateTime, utcnow


class DownloadLog(Base):
    __tablename__ = "download_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_id = Column(Integer, ForeignKey("tokens.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_id = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True)
    ip_address = Column(String(45), nullable=True)
    success = Column(Boolean, nullable=False)
    error = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow)
