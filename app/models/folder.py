"""Folder model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from app.database import Base


class Folder(Base):
    """Top-level storage folder owned by a single user."""

    __tablename__ = "folder"
    __table_args__ = (UniqueConstraint("owner_id", "name", name="uq_folder_owner_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    password_hash = Column(String(256), nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
