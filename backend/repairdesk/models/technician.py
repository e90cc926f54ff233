from __future__ import annotations
import uuid
from datetime import datetime
from typing import List
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime, JSON
from repairdesk.utils.timestamps import utcnow
from .base import Base


class Technician(Base):
    __tablename__ = 'technicians'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(150), nullable=False)
    specialties: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

# Active ticket counts are not stored; the store adapter derives them from assigned tickets on read.

__all__ = ["Technician"]
