from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from digital_download.core.database import Base, UTCDateTime, utcnow


class Token(Base):
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=True, index=True)
    enabled = Column(Boolean, nullable=False, default=True)
    expires = Column(UTCDateTime(), nullable=True)
    max_downloads = Column(Integer, nullable=True)
    total_downloads = Column(Integer, nullable=False, default=0)
    last_downloaded = Column(UTCDateTime(), nullable=True)
    # JSON encoded: null, "*", a user id, a group handle or a list of ids/handles.
    require_user = Column(Text, nullable=True)
    # JSON object of extra response headers.
    headers = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow)
