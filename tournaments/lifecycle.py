"""Match state machine.

Every mutation of a match goes through one of the transitions below, which
re-derive the status from the slots instead of leaving it to the caller:

    pending -> scheduled -> in_progress -> completed
               scheduled -> completed
    pending -> bye (one participant, resolved without play)

``completed`` and ``bye`` are terminal.
"""

import logging
from datetime import datetime

from .exceptions import ConcurrencyConflict, InvalidScore, MatchNotPlayable
from .models import (
    PLAYABLE_MATCH_STATUSES,
    RESOLVED_MATCH_STATUSES,
    SLOT_RECEIVING_STATUSES,
    MatchStatus,
    TournamentMatch,
)

logger = logging.getLogger(__name__)


def is_terminal(match: TournamentMatch) -> bool:
    return match.status in RESOLVED_MATCH_STATUSES


def refresh_status(match: TournamentMatch) -> MatchStatus:
    """Promote pending -> scheduled once both slots are filled."""
    if match.status in SLOT_RECEIVING_STATUSES:
        both_known = match.participant1_id is not None and match.participant2_id is not None
        match.status = MatchStatus.SCHEDULED if both_known else MatchStatus.PENDING
    return match.status


def assign_slot(match: TournamentMatch, slot: int, participant_id: int) -> None:
    """Seat a participant in slot 1 or 2 of a match that is still open."""
    if match.status not in SLOT_RECEIVING_STATUSES:
        raise MatchNotPlayable(
            f"Match {match.id} is {match.status.value} and cannot receive participants"
        )

    if slot == 1:
        current = match.participant1_id
    elif slot == 2:
        current = match.participant2_id
    else:
        raise ValueError(f"Slot must be 1 or 2, got {slot}")

    if current is not None and current != participant_id:
        raise ConcurrencyConflict(
            f"Slot {slot} of match {match.id} already holds participant {current}"
        )

    if slot == 1:
        match.participant1_id = participant_id
    else:
        match.participant2_id = participant_id
    refresh_status(match)


def resolve_bye(match: TournamentMatch) -> int:
    """Auto-advance the only participant of a match; returns the winner."""
    if match.status not in SLOT_RECEIVING_STATUSES:
        raise MatchNotPlayable(
            f"Match {match.id} is {match.status.value} and cannot become a bye"
        )

    present = [p for p in match.slots if p is not None]
    if len(present) != 1:
        raise MatchNotPlayable(
            f"Bye match {match.id} needs exactly one participant, has {len(present)}"
        )

    match.is_bye = True
    match.winner_id = present[0]
    match.status = MatchStatus.BYE
    logger.debug(f"Match {match.id} resolved as bye for participant {match.winner_id}")
    return match.winner_id


def _require_both_slots(match: TournamentMatch) -> None:
    if match.participant1_id is None or match.participant2_id is None:
        raise MatchNotPlayable(f"Match {match.id} is still waiting for a participant")


def start_match(match: TournamentMatch) -> None:
    """Mark a scheduled match as being played."""
    _require_both_slots(match)
    if match.status != MatchStatus.SCHEDULED:
        raise MatchNotPlayable(
            f"Match {match.id} is {match.status.value}, only scheduled matches can start"
        )
    match.status = MatchStatus.IN_PROGRESS


def schedule_match(match: TournamentMatch, scheduled_at: datetime) -> None:
    """Set the planned start time of a match that has not been played."""
    if match.status not in SLOT_RECEIVING_STATUSES:
        raise MatchNotPlayable(
            f"Match {match.id} is {match.status.value} and cannot be rescheduled"
        )
    match.scheduled_at = scheduled_at


def validate_scores(score1: int, score2: int) -> None:
    if score1 < 0 or score2 < 0:
        raise InvalidScore(f"Scores cannot be negative, got {score1}-{score2}")
    if score1 == score2:
        raise InvalidScore(
            f"Elimination matches cannot end in a draw, got {score1}-{score2}"
        )


def complete_match(
    match: TournamentMatch,
    score1: int,
    score2: int,
    completed_at: datetime | None = None,
) -> int:
    """Record the scores of a played match; returns the winner."""
    _require_both_slots(match)
    if match.status not in PLAYABLE_MATCH_STATUSES:
        raise MatchNotPlayable(
            f"Match {match.id} is {match.status.value} and cannot take a result"
        )
    validate_scores(score1, score2)

    # Both slots are seated, so the winner is never None
    winner_id: int = match.participant1_id if score1 > score2 else match.participant2_id
    match.participant1_score = score1
    match.participant2_score = score2
    match.winner_id = winner_id
    match.status = MatchStatus.COMPLETED
    match.completed_at = completed_at or datetime.now()
    return winner_id


def invariant_violations(match: TournamentMatch) -> list[str]:
    """List every structural invariant the match currently breaks."""
    problems: list[str] = []

    if match.winner_id is not None and match.winner_id not in match.slots:
        problems.append(f"winner {match.winner_id} is not seated in match {match.id}")

    resolved = match.status in RESOLVED_MATCH_STATUSES
    if resolved != (match.winner_id is not None):
        problems.append(
            f"match {match.id} is {match.status.value} with winner {match.winner_id}"
        )

    if match.is_bye != (match.status == MatchStatus.BYE):
        problems.append(f"match {match.id} bye flag disagrees with status")

    if match.status == MatchStatus.BYE and sum(p is not None for p in match.slots) != 1:
        problems.append(f"bye match {match.id} must have exactly one participant")

    if (
        match.participant1_id is not None
        and match.participant1_id == match.participant2_id
    ):
        problems.append(f"match {match.id} seats the same participant twice")

    return problems
