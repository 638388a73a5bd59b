from flagle.domain.game_session import GameSession, GuessRecord
from flagle.models.dc_models import (
    GameEndModel,
    GuessOutcomeModel,
    GuessResultModel,
    SessionStateModel,
)
from flagle.services.daily_game import GuessOutcome


class DataConverter:
    """This class is used to convert game state into the models sent to the client."""

    def convert_guessrecord_to_guessresultmodel(
        self, session: GameSession, record: GuessRecord
    ) -> GuessResultModel:
        """Convert one GuessRecord to the row shown in the guess list

        Args:
            session (GameSession): Session the record belongs to
            record (GuessRecord): Accepted guess

        Returns:
            GuessResultModel: Display name, reveal percentage and exact-match flag
        """
        return GuessResultModel(
            identifier=record.identifier,
            display_name=session.pool.display_name(record.identifier),
            reveal_percentage=round(record.reveal_percentage, 2),
            is_exact_match=session.is_exact_match(record),
        )

    def convert_session_to_sessionstatemodel(self, session: GameSession) -> SessionStateModel:
        """Convert the GameSession to the SessionStateModel to send client"""
        game_end = None
        end_event = session.end_event()
        if end_event is not None:
            game_end = GameEndModel(
                won=end_event.won,
                target_display_name=end_event.target_display_name,
            )

        return SessionStateModel(
            session_date=session.session_date,
            status=session.status,
            guesses=[
                self.convert_guessrecord_to_guessresultmodel(session, record)
                for record in session.guesses
            ],
            remaining_guesses=session.remaining_guesses,
            reveal_percentage=round(session.engine.reveal_percentage, 2),
            game_end=game_end,
        )

    def convert_outcome_to_guessoutcomemodel(
        self, session: GameSession, outcome: GuessOutcome
    ) -> GuessOutcomeModel:
        guess = None
        if outcome.record is not None:
            guess = self.convert_guessrecord_to_guessresultmodel(session, outcome.record)
        return GuessOutcomeModel(
            accepted=outcome.accepted,
            reason=outcome.reason,
            guess=guess,
            session=self.convert_session_to_sessionstatemodel(session),
        )
