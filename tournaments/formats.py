"""Bracket format strategies and their registry."""

import random
from abc import ABC, abstractmethod
from collections.abc import Sequence

from .bracket import Bracket
from .builder import build_bracket
from .exceptions import UnsupportedFormat
from .models import SeedingPolicy, TournamentFormat, TournamentParticipant
from .seeding import assign_seeds


class BracketFormat(ABC):
    """Abstract base class for bracket formats."""

    @property
    @abstractmethod
    def format(self) -> TournamentFormat:
        """Format this strategy builds."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable format name for display in UI."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Format description."""
        pass

    @abstractmethod
    def generate(
        self,
        tournament_id: int,
        participants: Sequence[TournamentParticipant],
        policy: SeedingPolicy,
        manual_order: Sequence[int] | None = None,
        rng: random.Random | None = None,
    ) -> Bracket:
        """Seed the roster and build the match graph."""
        pass


class SingleEliminationFormat(BracketFormat):
    """Knockout bracket padded to a power of two, byes to the top seeds."""

    @property
    def format(self) -> TournamentFormat:
        return TournamentFormat.SINGLE_ELIMINATION

    @property
    def display_name(self) -> str:
        return "Single Elimination"

    @property
    def description(self) -> str:
        return "One loss eliminates; winners advance until a single champion remains"

    def generate(
        self,
        tournament_id: int,
        participants: Sequence[TournamentParticipant],
        policy: SeedingPolicy,
        manual_order: Sequence[int] | None = None,
        rng: random.Random | None = None,
    ) -> Bracket:
        slots = assign_seeds(participants, policy, manual_order, rng)
        return build_bracket(tournament_id, [p.id if p else None for p in slots])


class FormatRegistry:
    """Registry for managing available bracket formats."""

    def __init__(self):
        self._formats: dict[TournamentFormat, type[BracketFormat]] = {}
        self._register_built_in_formats()

    def _register_built_in_formats(self):
        """Register the built-in bracket formats."""
        self.register(SingleEliminationFormat)

    def register(self, format_class: type[BracketFormat]) -> None:
        """Register a bracket format class."""
        instance = format_class()
        self._formats[instance.format] = format_class

    def get_format(self, tournament_format: TournamentFormat) -> BracketFormat:
        """Get a format instance, rejecting formats without a builder."""
        if tournament_format not in self._formats:
            raise UnsupportedFormat(
                f"Bracket generation for {tournament_format.value} is not supported. "
                f"Available: {self.list_formats()}"
            )
        return self._formats[tournament_format]()

    def list_formats(self) -> list[str]:
        """List all available format names."""
        return [f.value for f in self._formats]

    def get_format_descriptions(self) -> dict[str, dict[str, str]]:
        """Get format names, display names, and descriptions."""
        descriptions: dict[str, dict[str, str]] = {}
        for tournament_format, format_class in self._formats.items():
            instance = format_class()
            descriptions[tournament_format.value] = {
                "display_name": instance.display_name,
                "description": instance.description,
            }
        return descriptions


# Global registry instance
format_registry = FormatRegistry()
