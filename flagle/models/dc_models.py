from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from flagle.domain.game_session import RejectionReason, SessionStatus


class PlayerModel(BaseModel):
    player_id: UUID


class PoolEntryModel(BaseModel):
    identifier: str
    display_name: str

    class Config:
        from_attributes = True


class GuessRequestModel(BaseModel):
    guess: str  # identifier or display name


class GuessResultModel(BaseModel):
    identifier: str
    display_name: str
    reveal_percentage: float
    is_exact_match: bool


class GameEndModel(BaseModel):
    won: bool
    target_display_name: str


class SessionStateModel(BaseModel):
    session_date: date
    status: SessionStatus
    guesses: List[GuessResultModel]
    remaining_guesses: int
    reveal_percentage: float
    game_end: Optional[GameEndModel] = None


class GuessOutcomeModel(BaseModel):
    accepted: bool
    reason: Optional[RejectionReason] = None
    guess: Optional[GuessResultModel] = None
    session: SessionStateModel


class CountdownModel(BaseModel):
    seconds_remaining: int
    display: str
