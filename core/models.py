"""Declarative base and the generic record table backing every collection."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class Record(Base, TimestampMixin):
    __tablename__ = "records"
    __table_args__ = (Index("ix_records_collection_tenant", "collection", "tenant_id"),)

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)
    tenant_id = Column(String(128), nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
