"""Tournament bracket engine."""

from .manager import TournamentManager
from .database import TournamentDatabaseManager
from .api import TournamentAPI
from .bracket import Bracket, round_name
from .builder import build_bracket
from .formats import format_registry
from .seeding import assign_seeds, bracket_order, next_power_of_two
from .models import (
    Tournament,
    TournamentParticipant,
    TournamentMatch,
    TournamentStatus,
    TournamentFormat,
    TournamentCreateRequest,
    ParticipantCreateRequest,
    ParticipantStatus,
    GenerateBracketRequest,
    MatchResultRequest,
    ScheduleMatchRequest,
    BracketData,
    MatchStatus,
    MatchResultOutcome,
    RoundStatus,
    SeedingPolicy,
)

__all__ = [
    "TournamentManager",
    "TournamentDatabaseManager",
    "TournamentAPI",
    "Bracket",
    "round_name",
    "build_bracket",
    "format_registry",
    "assign_seeds",
    "bracket_order",
    "next_power_of_two",
    "Tournament",
    "TournamentParticipant",
    "TournamentMatch",
    "TournamentStatus",
    "TournamentFormat",
    "TournamentCreateRequest",
    "ParticipantCreateRequest",
    "ParticipantStatus",
    "GenerateBracketRequest",
    "MatchResultRequest",
    "ScheduleMatchRequest",
    "BracketData",
    "MatchStatus",
    "MatchResultOutcome",
    "RoundStatus",
    "SeedingPolicy",
]
