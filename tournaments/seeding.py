"""Seeding assignment and standard bracket placement."""

import logging
import math
import random
from collections import Counter
from collections.abc import Sequence

from .exceptions import InsufficientParticipants, InvalidSeeding
from .models import SeedingPolicy, TournamentParticipant

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2


def next_power_of_two(n: int) -> int:
    """Smallest power of two that is >= n."""
    if n <= 1:
        return 1
    return 2 ** math.ceil(math.log2(n))


def bracket_order(size: int) -> list[int]:
    """Generate the standard tournament bracket order of 1-based seeds.

    Adjacent entries meet in the first round. If all higher seeds win they
    meet in the proper rounds, seeds 1 and 2 only in the final.

    For 8 slots: [1, 8, 4, 5, 2, 7, 3, 6]
    """
    if size < 1 or size & (size - 1):
        raise ValueError(f"Bracket size must be a power of two, got {size}")

    order = [1]
    while len(order) < size:
        width = len(order) * 2
        order = [s for seed in order for s in (seed, width + 1 - seed)]
    return order


def place_seeds(
    ordered: Sequence[TournamentParticipant],
) -> list[TournamentParticipant | None]:
    """Map a seed order (index 0 = seed 1) onto bracket slots.

    The list is padded to the next power of two; the padding seeds are the
    empty slots, so each empty slot faces one of the strongest seeds.
    """
    size = next_power_of_two(len(ordered))
    padded: list[TournamentParticipant | None] = list(ordered)
    padded.extend([None] * (size - len(ordered)))
    return [padded[seed - 1] for seed in bracket_order(size)]


def _ranked_key(participant: TournamentParticipant) -> tuple[bool, int, int]:
    # Unseeded entrants go last; ties fall back to registration id
    return (
        participant.seed is None,
        participant.seed if participant.seed is not None else 0,
        participant.id if participant.id is not None else 0,
    )


def assign_seeds(
    participants: Sequence[TournamentParticipant],
    policy: SeedingPolicy,
    manual_order: Sequence[int] | None = None,
    rng: random.Random | None = None,
) -> list[TournamentParticipant | None]:
    """Order participants into bracket slots according to a seeding policy.

    Returns one entry per bracket slot (a power of two long), with ``None``
    marking the empty slots that become byes.
    """
    if len(participants) < MIN_PARTICIPANTS:
        raise InsufficientParticipants(
            f"At least {MIN_PARTICIPANTS} participants are required, "
            f"got {len(participants)}"
        )

    if policy == SeedingPolicy.RANDOM:
        ordered = list(participants)
        (rng or random.Random()).shuffle(ordered)
    elif policy == SeedingPolicy.RANKED:
        ordered = sorted(participants, key=_ranked_key)
    elif policy == SeedingPolicy.MANUAL:
        ordered = _manual_order(participants, manual_order)
    else:
        raise InvalidSeeding(f"Unknown seeding policy: {policy}")

    logger.debug(
        f"Seeded {len(ordered)} participants with {policy.value} policy: "
        f"{[p.id for p in ordered]}"
    )
    return place_seeds(ordered)


def _manual_order(
    participants: Sequence[TournamentParticipant],
    manual_order: Sequence[int] | None,
) -> list[TournamentParticipant]:
    """Validate that the manual order is a bijection onto the roster."""
    if manual_order is None:
        raise InvalidSeeding("Manual seeding requires an explicit participant order")

    by_id = {p.id: p for p in participants}
    counts = Counter(manual_order)
    duplicates = sorted(pid for pid, count in counts.items() if count > 1)
    if duplicates:
        raise InvalidSeeding(f"Participants assigned more than once: {duplicates}")

    seen = set(counts)
    unknown = sorted(seen - by_id.keys())
    if unknown:
        raise InvalidSeeding(f"Unknown participants in manual order: {unknown}")

    missing = sorted(pid for pid in by_id if pid not in seen)
    if missing:
        raise InvalidSeeding(f"Participants missing from manual order: {missing}")

    return [by_id[pid] for pid in manual_order]
