"""Database models for the template creation history."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class CreationRun(Base):
    __tablename__ = "creation_runs"

    id = Column(Integer, primary_key=True, index=True)
    template_name = Column(String(255), nullable=False, index=True)
    template_type = Column(String(10), nullable=False)
    target_directory = Column(String(1000), nullable=False)
    created_path = Column(String(1000), nullable=True)
    success = Column(Boolean, default=False, index=True)
    overwritten = Column(Boolean, default=False)
    files_created = Column(Integer, default=0)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
