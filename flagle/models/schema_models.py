from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class SessionSnapshotSchema(BaseModel):
    snapshot_id: UUID
    player_id: str
    session_date: date
    payload: str
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
