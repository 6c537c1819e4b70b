"""
SQLAlchemy models for ItemScan database.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class KeyValueEntry(Base):
    """String-valued entry of the key-value store (usage counters live here)."""
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
