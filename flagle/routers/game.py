import io
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from PIL import Image
from uuid6 import uuid7

from flagle.converter import DataConverter
from flagle.domain.daily_target import format_countdown, time_until_next_day
from flagle.domain.errors import LoadError, SessionInitError
from flagle.manager import GameRegistry
from flagle.models.dc_models import (
    CountdownModel,
    GuessOutcomeModel,
    GuessRequestModel,
    PlayerModel,
    PoolEntryModel,
    SessionStateModel,
)
from flagle.services.daily_game import DailyGame

game_router = APIRouter()
data_converter = DataConverter()


def get_registry(request: Request) -> GameRegistry:
    return request.app.state.registry


def get_palette(request: Request) -> List[List[int]]:
    return request.app.state.palette


async def load_game(registry: GameRegistry, player_id: UUID) -> DailyGame:
    try:
        return await registry.get_or_start(str(player_id))
    except SessionInitError as e:
        logging.error(f"Failed to start game for {player_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Today's flag is unavailable.",
        )


class PlayerAPI:
    @staticmethod
    @game_router.post("/players", response_model=PlayerModel)
    async def create_player() -> PlayerModel:
        """Issue a new player_id; the client keeps it to find its game again"""
        return PlayerModel(player_id=uuid7())


class PoolAPI:
    @staticmethod
    @game_router.get("/pool", response_model=List[PoolEntryModel])
    async def get_pool(registry: GameRegistry = Depends(get_registry)):
        return [PoolEntryModel.model_validate(entry) for entry in registry.pool]

    @staticmethod
    @game_router.get("/palette", response_model=List[List[int]])
    async def get_palette_colors(palette: List[List[int]] = Depends(get_palette)):
        return palette


class SessionAPI:
    @staticmethod
    @game_router.get("/session", response_model=SessionStateModel)
    async def get_session(
        player_id: UUID, registry: GameRegistry = Depends(get_registry)
    ) -> SessionStateModel:
        """Send the current state of today's game

        Args:
            player_id (UUID): To identify the player

        Returns:
            SessionStateModel: Guesses, status and the end event once the game is over
        """
        game = await load_game(registry, player_id)
        return data_converter.convert_session_to_sessionstatemodel(game.session)

    @staticmethod
    @game_router.post("/guess", response_model=GuessOutcomeModel)
    async def submit_guess(
        player_id: UUID,
        guess: GuessRequestModel,
        registry: GameRegistry = Depends(get_registry),
    ) -> GuessOutcomeModel:
        """Receive one guess from the client

        Rejected guesses (unknown, duplicate, after game over, or while another
        guess is being processed) come back with accepted=False and a reason.

        Args:
            player_id (UUID): To identify the player
            guess (GuessRequestModel): Identifier or display name of the guessed flag
        """
        game = await load_game(registry, player_id)
        try:
            outcome = await game.submit_guess(guess.guess)
        except LoadError as e:
            logging.error(f"Failed to load guess image: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Flag image unavailable, try again.",
            )
        return data_converter.convert_outcome_to_guessoutcomemodel(game.session, outcome)

    @staticmethod
    @game_router.get("/reveal.png")
    async def get_reveal_image(
        player_id: UUID, registry: GameRegistry = Depends(get_registry)
    ) -> Response:
        """Send today's flag with the unrevealed pixels painted over"""
        game = await load_game(registry, player_id)
        image = Image.fromarray(game.session.engine.composite())
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return Response(
            content=buffer.getvalue(),
            media_type="image/png",
            headers={"Cache-Control": "no-cache"},
        )

    @staticmethod
    @game_router.get("/countdown", response_model=CountdownModel)
    async def get_countdown(registry: GameRegistry = Depends(get_registry)) -> CountdownModel:
        remaining = time_until_next_day(registry.clock.now(), registry.clock.tz)
        return CountdownModel(
            seconds_remaining=max(int(remaining.total_seconds()), 0),
            display=format_countdown(remaining),
        )
