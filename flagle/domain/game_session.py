"""Session state machine for one player and one calendar day.

    in_progress --(guess == target)--------> solved     (terminal)
    in_progress --(6th guess, not target)--> exhausted  (terminal)

The win condition is identifier equality. The reveal percentage is only a
signal for the player: two different flags can coincide pixel-for-pixel after
quantization, so a 100 % reveal on its own never wins the game.
"""

import logging
from datetime import date
from enum import Enum
from typing import List

from pydantic import BaseModel

from flagle.domain.pool import FlagPool
from flagle.domain.reveal import PixelBuffer, RevealEngine

MAX_GUESSES = 6


class SessionStatus(str, Enum):
    in_progress = "in_progress"
    solved = "solved"
    exhausted = "exhausted"


class RejectionReason(str, Enum):
    game_over = "game_over"
    duplicate = "duplicate"
    unknown_identifier = "unknown_identifier"
    busy = "busy"  # another submission is still being processed


class GuessRecord(BaseModel):
    identifier: str
    reveal_percentage: float
    order: int  # 0-based submission order

    class Config:
        frozen = True


class SessionSnapshot(BaseModel):
    """What is persisted between reloads on the same day."""

    guesses: List[str] = []
    solved: bool = False


class GameEnd(BaseModel):
    won: bool
    target_identifier: str
    target_display_name: str


class GameSession:
    def __init__(
        self,
        pool: FlagPool,
        target_identifier: str,
        target_buffer: PixelBuffer,
        session_date: date,
    ):
        if target_identifier not in pool:
            raise ValueError(f"Target {target_identifier} is not in the pool")
        self.pool = pool
        self.target_identifier = target_identifier
        self.session_date = session_date
        self.engine = RevealEngine(target_buffer)
        self.guesses: List[GuessRecord] = []
        self.status = SessionStatus.in_progress

    @property
    def solved(self) -> bool:
        return self.status == SessionStatus.solved

    @property
    def over(self) -> bool:
        return self.status != SessionStatus.in_progress

    @property
    def remaining_guesses(self) -> int:
        return MAX_GUESSES - len(self.guesses)

    @property
    def guessed_identifiers(self) -> List[str]:
        return [record.identifier for record in self.guesses]

    def rejection_reason(self, identifier: str) -> RejectionReason | None:
        """Why identifier would be rejected right now, or None if it would be accepted."""
        if self.over:
            return RejectionReason.game_over
        if identifier not in self.pool:
            return RejectionReason.unknown_identifier
        if identifier in self.guessed_identifiers:
            return RejectionReason.duplicate
        return None

    def submit_guess(self, identifier: str, guess_buffer: PixelBuffer) -> GuessRecord | None:
        """Apply a guess and advance the state machine.

        Args:
            identifier (str): Pool identifier of the guessed flag
            guess_buffer (PixelBuffer): Decoded image of that flag

        Returns:
            GuessRecord | None: The new record, or None when the guess is rejected
        """
        reason = self.rejection_reason(identifier)
        if reason is not None:
            logging.debug(f"Rejected guess {identifier}: {reason.value}")
            return None

        percentage = self.engine.apply_guess(guess_buffer)
        record = GuessRecord(
            identifier=identifier,
            reveal_percentage=percentage,
            order=len(self.guesses),
        )
        self.guesses.append(record)

        if identifier == self.target_identifier:
            self.status = SessionStatus.solved
        elif len(self.guesses) >= MAX_GUESSES:
            self.status = SessionStatus.exhausted

        if self.over:
            self.engine.reveal_all()
        return record

    def is_exact_match(self, record: GuessRecord) -> bool:
        return record.identifier == self.target_identifier

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(guesses=self.guessed_identifiers, solved=self.solved)

    def end_event(self) -> GameEnd | None:
        if not self.over:
            return None
        return GameEnd(
            won=self.solved,
            target_identifier=self.target_identifier,
            target_display_name=self.pool.display_name(self.target_identifier),
        )
