"""Result recording and winner propagation over a bracket."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .bracket import Bracket, successor_slot
from .lifecycle import assign_slot, complete_match, resolve_bye
from .models import MatchStatus, TournamentMatch

logger = logging.getLogger(__name__)


@dataclass
class RecordedResult:
    """Matches touched by one result submission."""

    match: TournamentMatch
    successor: TournamentMatch | None = None
    changed: list[TournamentMatch] = field(default_factory=list)
    champion_id: int | None = None


def _has_dead_slot(bracket: Bracket, match: TournamentMatch) -> bool:
    """True when one slot is empty and no match can ever fill it."""
    if match.round == 1:
        return False
    for slot, participant_id in ((1, match.participant1_id), (2, match.participant2_id)):
        if participant_id is None and bracket.feeder(match, slot) is None:
            return True
    return False


def advance_winner(bracket: Bracket, match: TournamentMatch) -> list[TournamentMatch]:
    """Write a decided winner into its successor, following latent byes.

    Returns the successor matches that changed, nearest first.
    """
    changed: list[TournamentMatch] = []
    current = match
    while current.winner_id is not None:
        successor = bracket.successor(current)
        if successor is None:
            break

        slot = successor_slot(current)
        assign_slot(successor, slot, current.winner_id)
        changed.append(successor)
        logger.debug(
            f"Advanced participant {current.winner_id} from match {current.id} "
            f"into slot {slot} of match {successor.id} ({successor.status.value})"
        )

        if successor.status == MatchStatus.PENDING and _has_dead_slot(bracket, successor):
            resolve_bye(successor)
            current = successor
        else:
            break
    return changed


def propagate_byes(bracket: Bracket) -> list[TournamentMatch]:
    """Push every resolved bye winner forward, round by round."""
    changed: dict[str, TournamentMatch] = {}
    for number in sorted(bracket.rounds):
        for match in bracket.rounds[number]:
            if match.status != MatchStatus.BYE:
                continue
            successor = bracket.successor(match)
            if successor is None:
                continue
            if match.winner_id in successor.slots:
                continue
            for updated in advance_winner(bracket, match):
                changed[updated.id] = updated
    return list(changed.values())


def record_result(
    bracket: Bracket,
    match_id: str,
    score1: int,
    score2: int,
    completed_at: datetime | None = None,
) -> RecordedResult:
    """Finalize a played match and propagate its winner."""
    match = bracket.get(match_id)
    winner_id = complete_match(match, score1, score2, completed_at)
    logger.info(
        f"Match {match.id} (round {match.round}) completed {match.score}, "
        f"winner {winner_id}"
    )

    changed = advance_winner(bracket, match)
    result = RecordedResult(
        match=match,
        successor=changed[0] if changed else None,
        changed=changed,
    )

    final = changed[-1] if changed else match
    if final.is_final and final.winner_id is not None:
        result.champion_id = final.winner_id
    return result
