"""Tournament management: roster, bracket generation and result recording."""

import logging
import random
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime

from .bracket import Bracket
from .database import TournamentDatabaseManager
from .exceptions import (
    AlreadyInProgress,
    CapacityExceeded,
    DuplicateParticipant,
    InvalidTournamentState,
    MatchNotFound,
    ParticipantNotFound,
    TournamentNotFound,
)
from .formats import FormatRegistry, format_registry
from .lifecycle import schedule_match, start_match, validate_scores
from .locks import TournamentLockRegistry
from .models import (
    ELIGIBLE_PARTICIPANT_STATUSES,
    BracketData,
    MatchResultOutcome,
    MatchStatus,
    ParticipantCreateRequest,
    ParticipantStatus,
    RoundStatus,
    SeedingPolicy,
    Tournament,
    TournamentCreateRequest,
    TournamentMatch,
    TournamentParticipant,
    TournamentStatus,
)
from .propagation import record_result

logger = logging.getLogger(__name__)

ROSTER_STATUSES = (TournamentStatus.DRAFT, TournamentStatus.OPEN)
BRACKET_STATUSES = (
    TournamentStatus.DRAFT,
    TournamentStatus.OPEN,
    TournamentStatus.IN_PROGRESS,
)


class TournamentManager:
    """Manages tournament creation, bracket generation and progression.

    Every mutating operation on a tournament runs under that tournament's
    lock and inside a single database transaction, so bracket regeneration
    and result recording never interleave.
    """

    def __init__(
        self,
        db_path: str = "tournaments.db",
        rng: random.Random | None = None,
        locks: TournamentLockRegistry | None = None,
        formats: FormatRegistry | None = None,
        db_timeout: float = 5.0,
        default_policy: SeedingPolicy = SeedingPolicy.RANKED,
    ):
        self.db = TournamentDatabaseManager(db_path, timeout=db_timeout)
        self.rng = rng
        self.default_policy = default_policy
        self.locks = locks or TournamentLockRegistry()
        self.formats = formats or format_registry

    @contextmanager
    def _mutating(self, tournament_id: int) -> Iterator[sqlite3.Connection]:
        with self.locks.hold(tournament_id), self.db.transaction() as conn:
            yield conn

    def _require_tournament(
        self, tournament_id: int, conn: sqlite3.Connection | None = None
    ) -> Tournament:
        tournament = self.db.get_tournament(tournament_id, conn)
        if not tournament:
            raise TournamentNotFound(f"Tournament {tournament_id} not found")
        return tournament

    # Tournament lifecycle

    def create_tournament(self, request: TournamentCreateRequest) -> Tournament:
        """Create a draft tournament."""
        logger.info(
            f"Creating tournament: {request.name} "
            f"({request.format.value}, capacity {request.capacity})"
        )
        tournament = Tournament(
            name=request.name,
            capacity=request.capacity,
            format=request.format,
            status=TournamentStatus.DRAFT,
            created_at=datetime.now(),
        )
        with self.db.transaction() as conn:
            tournament_id = self.db.create_tournament(tournament, conn)
            return self._require_tournament(tournament_id, conn)

    def open_registration(self, tournament_id: int) -> Tournament:
        """Move a draft tournament to open registration."""
        with self._mutating(tournament_id) as conn:
            tournament = self._require_tournament(tournament_id, conn)
            if tournament.status != TournamentStatus.DRAFT:
                raise InvalidTournamentState(
                    f"Tournament {tournament_id} is {tournament.status.value}, "
                    "only draft tournaments can open registration"
                )
            self.db.update_tournament_status(tournament_id, TournamentStatus.OPEN, conn)
            return self._require_tournament(tournament_id, conn)

    def cancel_tournament(self, tournament_id: int) -> Tournament:
        with self._mutating(tournament_id) as conn:
            tournament = self._require_tournament(tournament_id, conn)
            if tournament.status == TournamentStatus.COMPLETED:
                raise InvalidTournamentState(
                    f"Tournament {tournament_id} is already completed"
                )
            self.db.update_tournament_status(
                tournament_id, TournamentStatus.CANCELLED, conn
            )
            logger.info(f"Cancelled tournament {tournament_id}")
            return self._require_tournament(tournament_id, conn)

    def delete_tournament(self, tournament_id: int) -> bool:
        with self.locks.hold(tournament_id):
            deleted = self.db.delete_tournament(tournament_id)
        if deleted:
            self.locks.discard(tournament_id)
        return deleted

    def get_tournament(self, tournament_id: int) -> Tournament:
        return self._require_tournament(tournament_id)

    def list_tournaments(
        self, limit: int | None = None, offset: int = 0
    ) -> list[Tournament]:
        return self.db.list_tournaments(limit, offset)

    # Roster

    def register_participant(
        self, tournament_id: int, request: ParticipantCreateRequest
    ) -> TournamentParticipant:
        """Add an entrant while the roster is still open."""
        with self._mutating(tournament_id) as conn:
            tournament = self._require_tournament(tournament_id, conn)
            if tournament.status not in ROSTER_STATUSES:
                raise InvalidTournamentState(
                    f"Tournament {tournament_id} is {tournament.status.value}, "
                    "registration is closed"
                )

            roster = self.db.get_participants(tournament_id, conn)
            active = [p for p in roster if p.status in ELIGIBLE_PARTICIPANT_STATUSES]
            if len(active) >= tournament.capacity:
                raise CapacityExceeded(
                    f"Tournament {tournament_id} is full ({tournament.capacity} participants)"
                )
            if any(p.name == request.name for p in roster):
                raise DuplicateParticipant(
                    f"{request.name} is already registered for tournament {tournament_id}"
                )

            participant = TournamentParticipant(
                tournament_id=tournament_id,
                name=request.name,
                club=request.club,
                seed=request.seed,
            )
            participant.id = self.db.add_participant(participant, conn)
            logger.info(f"Registered {participant.name} for tournament {tournament_id}")
            return participant

    def withdraw_participant(
        self, tournament_id: int, participant_id: int
    ) -> TournamentParticipant:
        """Withdraw an entrant before the bracket is drawn."""
        return self._set_participant_status(
            tournament_id, participant_id, ParticipantStatus.WITHDRAWN
        )

    def confirm_participant(
        self, tournament_id: int, participant_id: int
    ) -> TournamentParticipant:
        """Confirm a registered entrant's place in the draw."""
        return self._set_participant_status(
            tournament_id, participant_id, ParticipantStatus.CONFIRMED
        )

    def disqualify_participant(
        self, tournament_id: int, participant_id: int
    ) -> TournamentParticipant:
        """Remove an entrant from the draw by organizer decision."""
        return self._set_participant_status(
            tournament_id, participant_id, ParticipantStatus.DISQUALIFIED
        )

    def _set_participant_status(
        self, tournament_id: int, participant_id: int, status: ParticipantStatus
    ) -> TournamentParticipant:
        """Change a roster entry while registration is still open."""
        with self._mutating(tournament_id) as conn:
            tournament = self._require_tournament(tournament_id, conn)
            if tournament.status not in ROSTER_STATUSES:
                raise InvalidTournamentState(
                    f"Tournament {tournament_id} is {tournament.status.value}, "
                    "the roster can no longer change"
                )
            participant = next(
                (
                    p
                    for p in self.db.get_participants(tournament_id, conn)
                    if p.id == participant_id
                ),
                None,
            )
            if participant is None:
                raise ParticipantNotFound(
                    f"Participant {participant_id} not found in tournament {tournament_id}"
                )
            if (
                status == ParticipantStatus.CONFIRMED
                and participant.status not in ELIGIBLE_PARTICIPANT_STATUSES
            ):
                raise InvalidTournamentState(
                    f"{participant.name} is {participant.status.value} and cannot be confirmed"
                )

            self.db.update_participant_status(tournament_id, participant_id, status, conn)
            participant.status = status
            logger.info(
                f"{participant.name} is now {status.value} in tournament {tournament_id}"
            )
            return participant

    def get_participants(self, tournament_id: int) -> list[TournamentParticipant]:
        self._require_tournament(tournament_id)
        return self.db.get_participants(tournament_id)

    # Bracket

    def generate_bracket(
        self,
        tournament_id: int,
        seeding_policy: SeedingPolicy | None = None,
        manual_order: Sequence[int] | None = None,
        regenerate: bool = False,
    ) -> list[TournamentMatch]:
        """Seed the roster and build (or rebuild) the whole bracket.

        An existing bracket without played results is replaced. Once any
        match is completed the call is rejected with AlreadyInProgress
        unless ``regenerate`` explicitly asks to discard those results.
        Without a policy the manager's ``default_policy`` is used.
        """
        seeding_policy = seeding_policy or self.default_policy
        with self._mutating(tournament_id) as conn:
            tournament = self._require_tournament(tournament_id, conn)

            existing = self.db.get_matches(tournament_id, conn=conn)
            completed = [m for m in existing if m.status == MatchStatus.COMPLETED]
            if completed and not regenerate:
                raise AlreadyInProgress(
                    f"Tournament {tournament_id} already has {len(completed)} completed "
                    "matches; pass regenerate to discard them"
                )

            if tournament.status not in BRACKET_STATUSES:
                raise InvalidTournamentState(
                    f"Tournament {tournament_id} is {tournament.status.value}, "
                    "its bracket can no longer be generated"
                )

            participants = [
                p
                for p in self.db.get_participants(tournament_id, conn)
                if p.status in ELIGIBLE_PARTICIPANT_STATUSES
            ]
            bracket_format = self.formats.get_format(tournament.format)
            bracket = bracket_format.generate(
                tournament_id, participants, seeding_policy, manual_order, self.rng
            )

            if existing:
                if completed:
                    logger.warning(
                        f"Regenerating tournament {tournament_id}: discarding "
                        f"{len(completed)} completed results"
                    )
                removed = self.db.delete_matches(tournament_id, conn)
                self.db.reset_eliminations(tournament_id, conn)
                logger.info(f"Discarded {removed} matches of tournament {tournament_id}")

            matches = list(bracket)
            self.db.add_matches(matches, conn)
            self.db.update_tournament_status(
                tournament_id,
                TournamentStatus.IN_PROGRESS,
                conn,
                total_rounds=bracket.total_rounds,
                champion_id=None,
                started_at=tournament.started_at or datetime.now(),
                completed_at=None,
            )

        logger.info(
            f"Generated {seeding_policy.value} bracket for tournament {tournament_id} "
            f"with {len(participants)} participants"
        )
        return matches

    def list_matches(
        self, tournament_id: int, round_number: int | None = None
    ) -> list[TournamentMatch]:
        """Current match rows ordered by round, then bracket position."""
        self._require_tournament(tournament_id)
        return self.db.get_matches(tournament_id, round_number)

    def get_bracket_view(self, tournament_id: int) -> BracketData:
        """Get bracket visualization data."""
        tournament = self._require_tournament(tournament_id)
        return BracketData(
            tournament=tournament,
            participants=self.db.get_participants(tournament_id),
            matches=self.db.get_matches(tournament_id),
        )

    def get_round_status(self, tournament_id: int, round_number: int) -> RoundStatus:
        self._require_tournament(tournament_id)
        return RoundStatus(**self.db.get_round_status(tournament_id, round_number))

    # Matches

    def record_match_result(
        self, tournament_id: int, match_id: str, score1: int, score2: int
    ) -> MatchResultOutcome:
        """Finalize a match, advance its winner and complete the tournament
        when the final is decided."""
        with self._mutating(tournament_id) as conn:
            tournament = self._require_tournament(tournament_id, conn)
            if tournament.status != TournamentStatus.IN_PROGRESS:
                raise InvalidTournamentState(
                    f"Tournament {tournament_id} is {tournament.status.value}, "
                    "results cannot be recorded"
                )

            matches = self.db.get_matches(tournament_id, conn=conn)
            snapshots = {m.id: m.model_copy() for m in matches}
            bracket = Bracket(matches)
            # Unknown match ids are reported before bad scores
            bracket.get(match_id)
            validate_scores(score1, score2)
            result = record_result(bracket, match_id, score1, score2)

            # Match first, then its successor: a stale read fails on the
            # match itself before any slot is written.
            for changed in [result.match, *result.changed]:
                self.db.update_match(changed, snapshots[changed.id], conn)

            loser_id = result.match.loser_id
            if loser_id is not None:
                self.db.eliminate_participant(
                    tournament_id, loser_id, result.match.round, conn
                )

            if result.champion_id is not None:
                self.db.update_tournament_status(
                    tournament_id,
                    TournamentStatus.COMPLETED,
                    conn,
                    champion_id=result.champion_id,
                    completed_at=result.match.completed_at or datetime.now(),
                )
                logger.info(
                    f"Tournament {tournament_id} completed, champion: {result.champion_id}"
                )

            return MatchResultOutcome(
                match=result.match,
                successor=result.successor,
                tournament=self._require_tournament(tournament_id, conn),
            )

    def start_match(self, tournament_id: int, match_id: str) -> TournamentMatch:
        """Mark a scheduled match as being played."""
        with self._mutating(tournament_id) as conn:
            match, snapshot = self._load_match(tournament_id, match_id, conn)
            start_match(match)
            self.db.update_match(match, snapshot, conn)
            logger.info(f"Started match {match_id} of tournament {tournament_id}")
            return match

    def schedule_match(
        self, tournament_id: int, match_id: str, scheduled_at: datetime
    ) -> TournamentMatch:
        """Set when a match that has not been played will take place."""
        with self._mutating(tournament_id) as conn:
            match, snapshot = self._load_match(tournament_id, match_id, conn)
            schedule_match(match, scheduled_at)
            self.db.update_match(match, snapshot, conn)
            return match

    def _load_match(
        self, tournament_id: int, match_id: str, conn: sqlite3.Connection
    ) -> tuple[TournamentMatch, TournamentMatch]:
        tournament = self._require_tournament(tournament_id, conn)
        if tournament.status != TournamentStatus.IN_PROGRESS:
            raise InvalidTournamentState(
                f"Tournament {tournament_id} is {tournament.status.value}"
            )
        for match in self.db.get_matches(tournament_id, conn=conn):
            if match.id == match_id:
                return match, match.model_copy()
        raise MatchNotFound(f"Match {match_id} not found in tournament {tournament_id}")
