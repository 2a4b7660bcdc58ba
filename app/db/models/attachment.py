"""Task attachment ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class TaskAttachment(Base):
    __tablename__ = "task_attachments"
    __table_args__ = (Index("ix_task_attachments_task_id", "task_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    file_name = Column(Text, nullable=False)
    file_size = Column(BigInteger, nullable=False)
    file_type = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
