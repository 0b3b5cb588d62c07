"""Tournament system data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class TournamentFormat(Enum):
    """Bracket formats a tournament can be configured with."""

    SINGLE_ELIMINATION = "single_elimination"
    DOUBLE_ELIMINATION = "double_elimination"
    ROUND_ROBIN = "round_robin"
    SWISS = "swiss"


class TournamentStatus(Enum):
    """Tournament lifecycle status."""

    DRAFT = "draft"
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchStatus(Enum):
    """Individual match status."""

    PENDING = "pending"  # At least one slot still unknown
    SCHEDULED = "scheduled"  # Both slots known, not started
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BYE = "bye"  # Auto-resolved, never played


class SeedingPolicy(Enum):
    """How participants are ordered into bracket slots."""

    RANDOM = "random"
    RANKED = "ranked"
    MANUAL = "manual"


class ParticipantStatus(Enum):
    """Registration status of a roster entry."""

    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    WITHDRAWN = "withdrawn"
    DISQUALIFIED = "disqualified"


ELIGIBLE_PARTICIPANT_STATUSES = (ParticipantStatus.REGISTERED, ParticipantStatus.CONFIRMED)
RESOLVED_MATCH_STATUSES = (MatchStatus.COMPLETED, MatchStatus.BYE)
SLOT_RECEIVING_STATUSES = (MatchStatus.PENDING, MatchStatus.SCHEDULED)
PLAYABLE_MATCH_STATUSES = (MatchStatus.SCHEDULED, MatchStatus.IN_PROGRESS)


class TournamentCreateRequest(BaseModel):
    """Request to create a new tournament."""

    name: str = Field(..., min_length=1, description="Tournament name")
    capacity: int = Field(
        default=16, ge=2, le=256, description="Maximum number of participants"
    )
    format: TournamentFormat = Field(
        default=TournamentFormat.SINGLE_ELIMINATION, description="Bracket format"
    )


class ParticipantCreateRequest(BaseModel):
    """Request to add an entrant to a tournament roster."""

    name: str = Field(..., min_length=1, description="Display name")
    club: str | None = Field(default=None, description="Club the entrant plays for")
    seed: int | None = Field(default=None, ge=1, description="Ranking, 1 is best")


class GenerateBracketRequest(BaseModel):
    """Request to build (or rebuild) a tournament bracket."""

    seeding_policy: SeedingPolicy | None = Field(
        default=None, description="Defaults to the configured seeding policy"
    )
    manual_order: list[int] | None = Field(
        default=None,
        description="Participant ids in seed order, required for manual seeding",
    )
    regenerate: bool = Field(
        default=False,
        description="Discard an existing bracket even if results were recorded",
    )


class MatchResultRequest(BaseModel):
    """Scores submitted for a played match."""

    score1: int
    score2: int


class ScheduleMatchRequest(BaseModel):
    """Planned start time for a match."""

    scheduled_at: datetime


class TournamentParticipant(BaseModel):
    """Tournament roster entry."""

    id: int | None = None
    tournament_id: int
    name: str
    club: str | None = None
    seed: int | None = None
    status: ParticipantStatus = ParticipantStatus.REGISTERED
    eliminated_in_round: int | None = None  # NULL while still active


class TournamentMatch(BaseModel):
    """Individual tournament match."""

    id: str
    tournament_id: int
    round: int  # 1 is the first round played
    match_number: int  # Sequential within tournament
    bracket_position: int  # 0-based slot within the round
    participant1_id: int | None = None
    participant2_id: int | None = None
    winner_id: int | None = None
    participant1_score: int | None = None
    participant2_score: int | None = None
    status: MatchStatus = MatchStatus.PENDING
    next_match_id: str | None = None  # NULL only for the final
    is_bye: bool = False
    scheduled_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_final(self) -> bool:
        return self.next_match_id is None

    @property
    def slots(self) -> tuple[int | None, int | None]:
        return (self.participant1_id, self.participant2_id)

    @property
    def loser_id(self) -> int | None:
        if self.winner_id is None or self.is_bye:
            return None
        if self.winner_id == self.participant1_id:
            return self.participant2_id
        return self.participant1_id

    @property
    def score(self) -> str | None:
        if self.participant1_score is None or self.participant2_score is None:
            return None
        return f"{self.participant1_score}-{self.participant2_score}"


class Tournament(BaseModel):
    """Complete tournament information."""

    id: int | None = None
    name: str
    capacity: int
    format: TournamentFormat = TournamentFormat.SINGLE_ELIMINATION
    status: TournamentStatus = TournamentStatus.DRAFT
    total_rounds: int = 0
    champion_id: int | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class BracketData(BaseModel):
    """Tournament bracket visualization data."""

    tournament: Tournament
    participants: list[TournamentParticipant]
    matches: list[TournamentMatch]


class RoundStatus(BaseModel):
    """Status of all matches in a round."""

    round_number: int
    total_matches: int
    completed_matches: int
    bye_matches: int
    pending_matches: int
    scheduled_matches: int
    in_progress_matches: int
    all_completed: bool


class MatchResultOutcome(BaseModel):
    """Everything a result submission changed."""

    match: TournamentMatch
    successor: TournamentMatch | None = None
    tournament: Tournament
