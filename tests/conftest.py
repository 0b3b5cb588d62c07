"""Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Temporary SQLite-backed tournament managers
- Roster factories for building brackets of any size
- Pytest configuration hooks
"""

import random
from collections.abc import Callable

import pytest

from tournaments import (
    ParticipantCreateRequest,
    SeedingPolicy,
    Tournament,
    TournamentCreateRequest,
    TournamentManager,
    TournamentParticipant,
)


# =============================================================================
# SHARED FIXTURES - Available to all test modules
# =============================================================================


@pytest.fixture
def manager(tmp_path) -> TournamentManager:
    """Provide a manager backed by a fresh database file.

    The random generator is fixed so random seeding is reproducible.
    """
    return TournamentManager(db_path=str(tmp_path / "tournaments.db"), rng=random.Random(7))


@pytest.fixture
def make_participants() -> Callable[[int], list[TournamentParticipant]]:
    """Build an in-memory roster with ids 101.. and seeds 1..n."""

    def factory(count: int, tournament_id: int = 1) -> list[TournamentParticipant]:
        return [
            TournamentParticipant(
                id=100 + seed,
                tournament_id=tournament_id,
                name=f"Player {seed}",
                club=f"Club {seed % 3}",
                seed=seed,
            )
            for seed in range(1, count + 1)
        ]

    return factory


@pytest.fixture
def seeded_tournament(
    manager: TournamentManager,
) -> Callable[..., tuple[Tournament, dict[int, TournamentParticipant]]]:
    """Create an open tournament with ``count`` ranked entrants.

    Returns the tournament and its participants keyed by seed.
    """

    def factory(
        count: int,
        generate: bool = True,
        policy: SeedingPolicy = SeedingPolicy.RANKED,
    ) -> tuple[Tournament, dict[int, TournamentParticipant]]:
        tournament = manager.create_tournament(
            TournamentCreateRequest(name=f"Open {count}", capacity=max(count, 2))
        )
        assert tournament.id is not None
        manager.open_registration(tournament.id)

        by_seed = {}
        for seed in range(1, count + 1):
            by_seed[seed] = manager.register_participant(
                tournament.id,
                ParticipantCreateRequest(name=f"Player {seed}", club="Padel Club", seed=seed),
            )

        if generate:
            manager.generate_bracket(tournament.id, policy)
        return manager.get_tournament(tournament.id), by_seed

    return factory


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that exercise the database or HTTP layer"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
