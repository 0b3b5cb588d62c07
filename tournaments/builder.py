"""Single-elimination bracket construction."""

import logging
import math
import uuid
from collections.abc import Sequence

from .bracket import Bracket
from .exceptions import InsufficientParticipants, InvalidSeeding
from .lifecycle import refresh_status, resolve_bye
from .models import MatchStatus, TournamentMatch
from .propagation import propagate_byes
from .seeding import next_power_of_two

logger = logging.getLogger(__name__)


def new_match_id() -> str:
    return uuid.uuid4().hex


def calculate_rounds(bracket_size: int) -> int:
    """Calculate total rounds needed for bracket size."""
    return int(math.log2(next_power_of_two(bracket_size)))


def build_bracket(tournament_id: int, slots: Sequence[int | None]) -> Bracket:
    """Build the full linked match tree from seeded slots.

    ``slots`` holds participant ids in bracket order, ``None`` marking an
    empty slot. The list is padded with empty slots to a power of two.
    Round-1 byes are resolved and pushed into round 2 before returning.
    """
    entrants = [p for p in slots if p is not None]
    if len(entrants) < 2:
        raise InsufficientParticipants(
            f"At least 2 participants are required, got {len(entrants)}"
        )
    if len(set(entrants)) != len(entrants):
        raise InvalidSeeding("A participant occupies more than one bracket slot")

    size = next_power_of_two(len(slots))
    padded = list(slots) + [None] * (size - len(slots))
    total_rounds = calculate_rounds(size)

    rounds: list[list[TournamentMatch]] = []
    match_number = 1
    for round_number in range(1, total_rounds + 1):
        round_matches = []
        for position in range(size // 2**round_number):
            round_matches.append(
                TournamentMatch(
                    id=new_match_id(),
                    tournament_id=tournament_id,
                    round=round_number,
                    match_number=match_number,
                    bracket_position=position,
                )
            )
            match_number += 1
        rounds.append(round_matches)

    # Link each match to the one its winner feeds (positions 2k, 2k+1 -> k)
    for children, parents in zip(rounds, rounds[1:]):
        for child in children:
            child.next_match_id = parents[child.bracket_position // 2].id

    for match in rounds[0]:
        first = padded[2 * match.bracket_position]
        second = padded[2 * match.bracket_position + 1]
        if first is None and second is None:
            raise InvalidSeeding(
                f"First-round match {match.match_number} has no participants; "
                "empty slots must face a seeded participant"
            )
        match.participant1_id = first
        match.participant2_id = second
        refresh_status(match)
        if match.status == MatchStatus.PENDING:
            resolve_bye(match)

    bracket = Bracket(m for round_matches in rounds for m in round_matches)
    propagate_byes(bracket)

    problems = bracket.validate()
    if problems:
        raise RuntimeError(f"Built an inconsistent bracket: {problems}")

    byes = sum(1 for m in rounds[0] if m.is_bye)
    logger.info(
        f"Built bracket for tournament {tournament_id}: {len(entrants)} participants, "
        f"size {size}, {total_rounds} rounds, {len(bracket)} matches, {byes} byes"
    )
    return bracket
