from datetime import datetime

from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column, UniqueConstraint
from sqlalchemy.types import Date, DateTime, String, TEXT, Uuid
from uuid6 import uuid7


class Base(DeclarativeBase):
    pass


class SessionSnapshotTable(Base):
    __tablename__ = "session_snapshot"
    __table_args__ = (
        UniqueConstraint("player_id", "session_date", name="uq_snapshot_player_day"),
    )
    snapshot_id = Column(Uuid, primary_key=True, default=uuid7)
    player_id = Column(String, index=True)
    session_date = Column(Date, index=True)
    payload = Column(TEXT)  # JSON: {"guesses": [...], "solved": bool}
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
