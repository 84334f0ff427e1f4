"""Database models for the deck."""
from sqlalchemy import Column, String, Text

from hskdeck.models.base import Base, TimestampMixin


class StoredState(Base, TimestampMixin):
    """Persisted state blob, one row per storage name."""

    __tablename__ = "stored_state"

    name = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)  # JSON document

    def __repr__(self) -> str:
        return f"<StoredState {self.name}>"
