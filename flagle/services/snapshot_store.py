"""Persistence of per-day session snapshots.

Routers and the game service do not touch DB sessions directly; they go
through a SnapshotStore. Each (player, calendar day) has its own snapshot, so
every day starts a fresh game.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Protocol

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flagle.crud import DeleteData, ReadData, UpdateData
from flagle.domain.game_session import SessionSnapshot


@dataclass(frozen=True)
class SessionKey:
    player_id: str
    session_date: date

    @property
    def storage_key(self) -> str:
        return f"flagle-{self.session_date.isoformat()}"


def parse_snapshot(payload: str | None) -> SessionSnapshot | None:
    """Parse a stored payload; anything unreadable counts as no prior session."""
    if not payload:
        return None
    try:
        return SessionSnapshot.model_validate_json(payload)
    except ValidationError as e:
        logging.warning(f"Discarding corrupt session snapshot: {e}")
        return None


class SnapshotStore(Protocol):
    async def get(self, key: SessionKey) -> SessionSnapshot | None: ...

    async def set(self, key: SessionKey, snapshot: SessionSnapshot) -> bool: ...


class DatabaseSnapshotStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.Session = session_factory

    async def get(self, key: SessionKey) -> SessionSnapshot | None:
        """Stored snapshot for key, None if there is none; raises StoreError if the read fails"""
        async with self.Session() as session:
            row = await ReadData.read_session_snapshot(key.player_id, key.session_date, session)
        if row is None:
            return None
        return parse_snapshot(row.payload)

    async def set(self, key: SessionKey, snapshot: SessionSnapshot) -> bool:
        async with self.Session() as session:
            return await UpdateData.upsert_session_snapshot(
                key.player_id, key.session_date, snapshot.model_dump_json(), session
            )

    async def delete_expired(self, before: date) -> int:
        async with self.Session() as session:
            deleted = await DeleteData.delete_expired_snapshots(before, session)
        logging.info(f"Deleted {deleted} session snapshots older than {before}")
        return deleted


class MemorySnapshotStore:
    """Keeps serialized snapshots in a dict; used for local play and tests."""

    def __init__(self):
        self.payloads: Dict[SessionKey, str] = {}

    async def get(self, key: SessionKey) -> SessionSnapshot | None:
        return parse_snapshot(self.payloads.get(key))

    async def set(self, key: SessionKey, snapshot: SessionSnapshot) -> bool:
        self.payloads[key] = snapshot.model_dump_json()
        return True

    async def delete_expired(self, before: date) -> int:
        expired = [key for key in self.payloads if key.session_date < before]
        for key in expired:
            del self.payloads[key]
        return len(expired)
