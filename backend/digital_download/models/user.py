from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from digital_download.core.database import Base, UTCDateTime, utcnow

user_group_members = Table(
    "user_group_members",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", Integer, ForeignKey("user_groups.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, index=True)
    created_at = Column(UTCDateTime(), default=utcnow)
    is_active = Column(Boolean, default=True)

    groups = relationship("UserGroup", secondary=user_group_members, back_populates="users")


class UserGroup(Base):
    __tablename__ = "user_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    handle = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)

    users = relationship("User", secondary=user_group_members, back_populates="groups")
