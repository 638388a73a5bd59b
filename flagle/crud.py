import logging
from datetime import date
from uuid6 import uuid7

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from flagle.domain.errors import StoreError
from flagle.models.schema_models import SessionSnapshotSchema
from flagle.models.schemas import Base, SessionSnapshotTable

logging.getLogger("aiosqlite").setLevel(logging.WARNING)


class CreateData:
    @staticmethod
    async def create_table(engine: AsyncEngine) -> None:
        """Create table if not exists"""
        try:
            async with engine.begin() as conn:
                # Existing tables are left as they are
                await conn.run_sync(Base.metadata.create_all)
        except IntegrityError as e:
            logging.warning(f"Table already exists or other integrity error: {e}")


class ReadData:
    @staticmethod
    async def read_session_snapshot(
        player_id: str, session_date: date, session: AsyncSession
    ) -> SessionSnapshotSchema | None:
        """Read the stored snapshot of one player's game for one day

        Args:
            player_id (str): To identify the player
            session_date (date): Local calendar day of the game

        Raises:
            StoreError: The read itself failed, as opposed to finding no row

        Returns:
            SessionSnapshotSchema | None: Stored row, None if there is none
        """
        async with session:
            try:
                stmt = select(SessionSnapshotTable).where(
                    SessionSnapshotTable.player_id == player_id,
                    SessionSnapshotTable.session_date == session_date,
                )
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    return None

                return SessionSnapshotSchema.model_validate(result)
            except Exception as e:
                logging.error(f"Failed to read session snapshot: {e}")
                raise StoreError(f"Cannot read snapshot of {player_id} for {session_date}") from e


class UpdateData:
    @staticmethod
    async def upsert_session_snapshot(
        player_id: str, session_date: date, payload: str, session: AsyncSession
    ) -> bool:
        """Create or overwrite the snapshot of one player's game for one day

        Args:
            player_id (str): To identify the player
            session_date (date): Local calendar day of the game
            payload (str): JSON snapshot of the guesses and solved flag

        Returns:
            bool: True if the snapshot was committed
        """
        async with session:
            try:
                stmt = select(SessionSnapshotTable).where(
                    SessionSnapshotTable.player_id == player_id,
                    SessionSnapshotTable.session_date == session_date,
                )
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    session.add(
                        SessionSnapshotTable(
                            snapshot_id=uuid7(),
                            player_id=player_id,
                            session_date=session_date,
                            payload=payload,
                        )
                    )
                else:
                    result.payload = payload
                await session.commit()
                return True
            except Exception as e:
                logging.error(f"Failed to store session snapshot: {e}")
                await session.rollback()
                return False


class DeleteData:
    @staticmethod
    async def delete_expired_snapshots(before: date, session: AsyncSession) -> int:
        """Delete snapshots of days before the given date

        Args:
            before (date): First day to keep

        Returns:
            int: Number of deleted snapshots
        """
        async with session:
            try:
                stmt = delete(SessionSnapshotTable).where(
                    SessionSnapshotTable.session_date < before
                )
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount or 0
            except Exception as e:
                logging.error(f"Failed to delete expired snapshots: {e}")
                await session.rollback()
                return 0
