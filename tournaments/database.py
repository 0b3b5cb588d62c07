"""Tournament database operations."""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, List

from .exceptions import ConcurrencyConflict
from .models import (
    MatchStatus,
    ParticipantStatus,
    Tournament,
    TournamentFormat,
    TournamentMatch,
    TournamentParticipant,
    TournamentStatus,
)
from .schema import SchemaManager

logger = logging.getLogger(__name__)

TOURNAMENT_UPDATE_FIELDS = ("total_rounds", "champion_id", "started_at", "completed_at")


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class TournamentDatabaseManager:
    """Manages SQLite database operations for tournaments."""

    def __init__(self, db_path: str = "tournaments.db", timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.schema_manager = SchemaManager()
        self._init_database()

    def _init_database(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        if not self.schema_manager.validate_schema_files():
            raise RuntimeError("Database schema validation failed - missing schema files")

        with self._get_connection() as conn:
            self.schema_manager.initialize_database_schema(conn.cursor())
        logger.info(f"Tournament database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get an autocommit connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
            conn.row_factory = sqlite3.Row  # Enable column access by name
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Tournament database error: {e}")
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one write transaction, rolled back on any error.

        ``BEGIN IMMEDIATE`` takes the write lock up front so concurrent
        writers serialize instead of interleaving reads and writes.
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    @contextmanager
    def _use(self, conn: sqlite3.Connection | None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
        else:
            with self._get_connection() as own:
                yield own

    # Tournaments

    def create_tournament(
        self, tournament: Tournament, conn: sqlite3.Connection | None = None
    ) -> int:
        """Create a new tournament and return its ID."""
        with self._use(conn) as db:
            cursor = db.execute(
                """
                INSERT INTO tournaments (
                    name, capacity, format, status, total_rounds, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    tournament.name,
                    tournament.capacity,
                    tournament.format.value,
                    tournament.status.value,
                    tournament.total_rounds,
                    _ts(tournament.created_at or datetime.now()),
                ),
            )

            tournament_id = cursor.lastrowid
            if tournament_id is None:
                raise RuntimeError("Failed to get tournament ID from database")

            logger.info(f"Created tournament {tournament_id}: {tournament.name}")
            return tournament_id

    def get_tournament(
        self, tournament_id: int, conn: sqlite3.Connection | None = None
    ) -> Tournament | None:
        """Get tournament by ID."""
        with self._use(conn) as db:
            row = db.execute(
                "SELECT * FROM tournaments WHERE id = ?", (tournament_id,)
            ).fetchone()
            return self._row_to_tournament(row) if row else None

    def list_tournaments(
        self, limit: int | None = None, offset: int = 0
    ) -> List[Tournament]:
        """List tournaments, newest first."""
        with self._get_connection() as conn:
            query = "SELECT * FROM tournaments ORDER BY created_at DESC, id DESC"

            params: List[Any] = []
            if limit:
                query += " LIMIT ? OFFSET ?"
                params.extend([limit, offset])

            rows = conn.execute(query, params).fetchall()
            return [self._row_to_tournament(row) for row in rows]

    def update_tournament_status(
        self,
        tournament_id: int,
        status: TournamentStatus,
        conn: sqlite3.Connection | None = None,
        **kwargs: Any,
    ) -> bool:
        """Update tournament status and optional fields."""
        unknown = set(kwargs) - set(TOURNAMENT_UPDATE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update tournament fields: {sorted(unknown)}")

        # Build dynamic update query
        set_clauses = ["status = ?"]
        params: List[Any] = [status.value]
        for field in TOURNAMENT_UPDATE_FIELDS:
            if field in kwargs:
                value = kwargs[field]
                set_clauses.append(f"{field} = ?")
                params.append(_ts(value) if isinstance(value, datetime) else value)
        params.append(tournament_id)

        with self._use(conn) as db:
            cursor = db.execute(
                f"UPDATE tournaments SET {', '.join(set_clauses)} WHERE id = ?",
                params,
            )
            updated = cursor.rowcount > 0

        if updated:
            logger.info(f"Updated tournament {tournament_id} status to {status.value}")
        return updated

    def delete_tournament(self, tournament_id: int) -> bool:
        """Delete tournament and all related data."""
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM tournaments WHERE id = ?", (tournament_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted tournament {tournament_id}")
        return deleted

    # Participants

    def add_participant(
        self, participant: TournamentParticipant, conn: sqlite3.Connection | None = None
    ) -> int:
        """Add participant to tournament."""
        with self._use(conn) as db:
            cursor = db.execute(
                """
                INSERT INTO tournament_participants (
                    tournament_id, name, club, seed, status
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    participant.tournament_id,
                    participant.name,
                    participant.club,
                    participant.seed,
                    participant.status.value,
                ),
            )

            participant_id = cursor.lastrowid
            if participant_id is None:
                raise RuntimeError("Failed to get participant ID from database")
            return participant_id

    def get_participants(
        self, tournament_id: int, conn: sqlite3.Connection | None = None
    ) -> List[TournamentParticipant]:
        """Get all participants for a tournament in registration order."""
        with self._use(conn) as db:
            rows = db.execute(
                """
                SELECT * FROM tournament_participants
                WHERE tournament_id = ?
                ORDER BY id
                """,
                (tournament_id,),
            ).fetchall()
            return [self._row_to_participant(row) for row in rows]

    def update_participant_status(
        self,
        tournament_id: int,
        participant_id: int,
        status: ParticipantStatus,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        with self._use(conn) as db:
            cursor = db.execute(
                """
                UPDATE tournament_participants SET status = ?
                WHERE tournament_id = ? AND id = ?
                """,
                (status.value, tournament_id, participant_id),
            )
            return cursor.rowcount > 0

    def eliminate_participant(
        self,
        tournament_id: int,
        participant_id: int,
        round_number: int,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Mark participant as eliminated in specified round."""
        with self._use(conn) as db:
            cursor = db.execute(
                """
                UPDATE tournament_participants
                SET eliminated_in_round = ?
                WHERE tournament_id = ? AND id = ?
                """,
                (round_number, tournament_id, participant_id),
            )
            updated = cursor.rowcount > 0

        if updated:
            logger.info(f"Eliminated participant {participant_id} in round {round_number}")
        return updated

    def reset_eliminations(
        self, tournament_id: int, conn: sqlite3.Connection | None = None
    ) -> None:
        with self._use(conn) as db:
            db.execute(
                """
                UPDATE tournament_participants SET eliminated_in_round = NULL
                WHERE tournament_id = ?
                """,
                (tournament_id,),
            )

    # Matches

    def add_matches(
        self, matches: Iterable[TournamentMatch], conn: sqlite3.Connection | None = None
    ) -> int:
        """Insert a freshly built set of matches."""
        rows = [
            (
                m.id,
                m.tournament_id,
                m.round,
                m.match_number,
                m.bracket_position,
                m.participant1_id,
                m.participant2_id,
                m.winner_id,
                m.participant1_score,
                m.participant2_score,
                m.status.value,
                m.next_match_id,
                int(m.is_bye),
                _ts(m.scheduled_at),
                _ts(m.completed_at),
            )
            for m in matches
        ]
        with self._use(conn) as db:
            db.executemany(
                """
                INSERT INTO tournament_matches (
                    id, tournament_id, round, match_number, bracket_position,
                    participant1_id, participant2_id, winner_id,
                    participant1_score, participant2_score, status,
                    next_match_id, is_bye, scheduled_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def get_matches(
        self,
        tournament_id: int,
        round_number: int | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> List[TournamentMatch]:
        """Get matches for tournament, optionally filtered by round."""
        with self._use(conn) as db:
            if round_number is not None:
                rows = db.execute(
                    """
                    SELECT * FROM tournament_matches
                    WHERE tournament_id = ? AND round = ?
                    ORDER BY bracket_position
                    """,
                    (tournament_id, round_number),
                ).fetchall()
            else:
                rows = db.execute(
                    """
                    SELECT * FROM tournament_matches
                    WHERE tournament_id = ?
                    ORDER BY round, bracket_position
                    """,
                    (tournament_id,),
                ).fetchall()
            return [self._row_to_match(row) for row in rows]

    def delete_matches(
        self, tournament_id: int, conn: sqlite3.Connection | None = None
    ) -> int:
        """Discard a tournament's whole bracket."""
        with self._use(conn) as db:
            cursor = db.execute(
                "DELETE FROM tournament_matches WHERE tournament_id = ?", (tournament_id,)
            )
            return cursor.rowcount

    def update_match(
        self,
        match: TournamentMatch,
        expected: TournamentMatch,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        """Write a match back only if the stored row still equals ``expected``.

        A miss means another writer changed the match (or filled the same
        successor slot) since it was read, and raises ConcurrencyConflict.
        """
        with self._use(conn) as db:
            cursor = db.execute(
                """
                UPDATE tournament_matches SET
                    participant1_id = ?, participant2_id = ?, winner_id = ?,
                    participant1_score = ?, participant2_score = ?, status = ?,
                    is_bye = ?, scheduled_at = ?, completed_at = ?
                WHERE id = ? AND status = ?
                    AND participant1_id IS ? AND participant2_id IS ?
                    AND winner_id IS ?
                """,
                (
                    match.participant1_id,
                    match.participant2_id,
                    match.winner_id,
                    match.participant1_score,
                    match.participant2_score,
                    match.status.value,
                    int(match.is_bye),
                    _ts(match.scheduled_at),
                    _ts(match.completed_at),
                    match.id,
                    expected.status.value,
                    expected.participant1_id,
                    expected.participant2_id,
                    expected.winner_id,
                ),
            )
            if cursor.rowcount == 0:
                raise ConcurrencyConflict(
                    f"Match {match.id} was modified by another request; refresh and retry"
                )

        logger.debug(f"Updated match {match.id} status to {match.status.value}")

    def get_round_status(
        self, tournament_id: int, round_number: int
    ) -> dict[str, Any]:
        """Get status of all matches in a round."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT status, COUNT(*) as count
                FROM tournament_matches
                WHERE tournament_id = ? AND round = ?
                GROUP BY status
                """,
                (tournament_id, round_number),
            ).fetchall()

        status_counts = {row["status"]: row["count"] for row in rows}
        total_matches = sum(status_counts.values())
        completed_matches = status_counts.get(MatchStatus.COMPLETED.value, 0)
        bye_matches = status_counts.get(MatchStatus.BYE.value, 0)

        return {
            "round_number": round_number,
            "total_matches": total_matches,
            "completed_matches": completed_matches,
            "bye_matches": bye_matches,
            "pending_matches": status_counts.get(MatchStatus.PENDING.value, 0),
            "scheduled_matches": status_counts.get(MatchStatus.SCHEDULED.value, 0),
            "in_progress_matches": status_counts.get(MatchStatus.IN_PROGRESS.value, 0),
            "all_completed": total_matches > 0
            and completed_matches + bye_matches == total_matches,
        }

    # Row mapping

    @staticmethod
    def _row_to_tournament(row: sqlite3.Row) -> Tournament:
        return Tournament(
            id=row["id"],
            name=row["name"],
            capacity=row["capacity"],
            format=TournamentFormat(row["format"]),
            status=TournamentStatus(row["status"]),
            total_rounds=row["total_rounds"],
            champion_id=row["champion_id"],
            created_at=row["created_at"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )

    @staticmethod
    def _row_to_participant(row: sqlite3.Row) -> TournamentParticipant:
        return TournamentParticipant(
            id=row["id"],
            tournament_id=row["tournament_id"],
            name=row["name"],
            club=row["club"],
            seed=row["seed"],
            status=ParticipantStatus(row["status"]),
            eliminated_in_round=row["eliminated_in_round"],
        )

    @staticmethod
    def _row_to_match(row: sqlite3.Row) -> TournamentMatch:
        return TournamentMatch(
            id=row["id"],
            tournament_id=row["tournament_id"],
            round=row["round"],
            match_number=row["match_number"],
            bracket_position=row["bracket_position"],
            participant1_id=row["participant1_id"],
            participant2_id=row["participant2_id"],
            winner_id=row["winner_id"],
            participant1_score=row["participant1_score"],
            participant2_score=row["participant2_score"],
            status=MatchStatus(row["status"]),
            next_match_id=row["next_match_id"],
            is_bye=bool(row["is_bye"]),
            scheduled_at=row["scheduled_at"],
            completed_at=row["completed_at"],
        )
