"""Tournament API endpoint handlers."""

import logging
from collections.abc import Iterable
from typing import Any, NoReturn

from fastapi import HTTPException

from .bracket import round_name
from .exceptions import (
    BracketEngineError,
    MatchNotFound,
    ParticipantNotFound,
    TournamentNotFound,
)
from .manager import TournamentManager
from .models import (
    GenerateBracketRequest,
    MatchResultRequest,
    ParticipantCreateRequest,
    ScheduleMatchRequest,
    Tournament,
    TournamentCreateRequest,
    TournamentMatch,
    TournamentParticipant,
)

logger = logging.getLogger(__name__)

NOT_FOUND_ERRORS = (TournamentNotFound, MatchNotFound, ParticipantNotFound)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_tournament(tournament: Tournament) -> dict[str, Any]:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "capacity": tournament.capacity,
        "format": tournament.format.value,
        "status": tournament.status.value,
        "total_rounds": tournament.total_rounds,
        "champion_id": tournament.champion_id,
        "created_at": _iso(tournament.created_at),
        "started_at": _iso(tournament.started_at),
        "completed_at": _iso(tournament.completed_at),
    }


def serialize_participant(participant: TournamentParticipant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "name": participant.name,
        "club": participant.club,
        "seed": participant.seed,
        "status": participant.status.value,
        "eliminated_in_round": participant.eliminated_in_round,
        "is_active": participant.eliminated_in_round is None,
    }


def serialize_match(
    match: TournamentMatch, participants: dict[int, TournamentParticipant]
) -> dict[str, Any]:
    """External match shape consumed by bracket renderers."""

    def entrant(participant_id: int | None) -> dict[str, Any] | None:
        if participant_id is None:
            return None
        participant = participants.get(participant_id)
        return {
            "id": participant_id,
            "name": participant.name if participant else None,
            "club": participant.club if participant else None,
            "seed": participant.seed if participant else None,
        }

    return {
        "id": match.id,
        "round": match.round,
        "match_number": match.match_number,
        "bracket_position": match.bracket_position,
        "participant1": entrant(match.participant1_id),
        "participant2": entrant(match.participant2_id),
        "winner_id": match.winner_id,
        "status": match.status.value,
        "score": match.score,
        "scheduled_at": _iso(match.scheduled_at),
        "completed_at": _iso(match.completed_at),
        "is_bye": match.is_bye,
        "next_match_id": match.next_match_id,
    }


def group_by_round(
    matches: Iterable[TournamentMatch],
    participants: dict[int, TournamentParticipant],
    total_rounds: int,
) -> list[dict[str, Any]]:
    """Matches grouped per round, ordered by bracket position."""
    rounds: dict[int, list[TournamentMatch]] = {}
    for match in matches:
        rounds.setdefault(match.round, []).append(match)

    return [
        {
            "round": number,
            "name": round_name(number, total_rounds),
            "matches": [
                serialize_match(m, participants)
                for m in sorted(rounds[number], key=lambda m: m.bracket_position)
            ],
        }
        for number in sorted(rounds)
    ]


def _raise_http(error: BracketEngineError) -> NoReturn:
    """Translate an engine error into an HTTP error response."""
    if isinstance(error, NOT_FOUND_ERRORS):
        status_code = 404
    elif error.kind == "validation":
        status_code = 400
    else:
        status_code = 409

    raise HTTPException(
        status_code=status_code,
        detail={
            "error": type(error).__name__,
            "kind": error.kind,
            "message": error.message,
            "retryable": error.retryable,
        },
    )


class TournamentAPI:
    """FastAPI endpoint handlers for tournament operations."""

    def __init__(self, tournament_manager: TournamentManager):
        self.manager = tournament_manager

    def _participants_by_id(self, tournament_id: int) -> dict[int, TournamentParticipant]:
        return {
            p.id: p
            for p in self.manager.db.get_participants(tournament_id)
            if p.id is not None
        }

    async def create_tournament(self, request: TournamentCreateRequest) -> dict[str, Any]:
        """Create a new tournament."""
        try:
            tournament = self.manager.create_tournament(request)
            return {
                "tournament": serialize_tournament(tournament),
                "message": f"Tournament '{request.name}' created successfully",
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to create tournament: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def list_tournaments(
        self, limit: int | None = None, offset: int = 0
    ) -> dict[str, Any]:
        """List all tournaments."""
        try:
            tournaments = self.manager.list_tournaments(limit, offset)
            return {
                "tournaments": [serialize_tournament(t) for t in tournaments],
                "count": len(tournaments),
            }
        except Exception as e:
            logger.error(f"Failed to list tournaments: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_tournament(self, tournament_id: int) -> dict[str, Any]:
        """Get tournament details."""
        try:
            return serialize_tournament(self.manager.get_tournament(tournament_id))
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to get tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def open_registration(self, tournament_id: int) -> dict[str, Any]:
        try:
            tournament = self.manager.open_registration(tournament_id)
            return {
                "tournament": serialize_tournament(tournament),
                "message": "Registration opened",
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to open tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def cancel_tournament(self, tournament_id: int) -> dict[str, Any]:
        """Cancel a tournament."""
        try:
            tournament = self.manager.cancel_tournament(tournament_id)
            return {
                "tournament": serialize_tournament(tournament),
                "message": "Tournament cancelled successfully",
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to cancel tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def delete_tournament(self, tournament_id: int) -> dict[str, Any]:
        """Delete a tournament and all related data."""
        try:
            if not self.manager.delete_tournament(tournament_id):
                raise HTTPException(status_code=404, detail="Tournament not found")
            return {
                "tournament_id": tournament_id,
                "message": "Tournament deleted successfully",
            }
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to delete tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def register_participant(
        self, tournament_id: int, request: ParticipantCreateRequest
    ) -> dict[str, Any]:
        try:
            participant = self.manager.register_participant(tournament_id, request)
            return {"participant": serialize_participant(participant)}
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to register participant for {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def withdraw_participant(
        self, tournament_id: int, participant_id: int
    ) -> dict[str, Any]:
        try:
            participant = self.manager.withdraw_participant(tournament_id, participant_id)
            return {"participant": serialize_participant(participant)}
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to withdraw participant {participant_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def confirm_participant(
        self, tournament_id: int, participant_id: int
    ) -> dict[str, Any]:
        try:
            participant = self.manager.confirm_participant(tournament_id, participant_id)
            return {"participant": serialize_participant(participant)}
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to confirm participant {participant_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def disqualify_participant(
        self, tournament_id: int, participant_id: int
    ) -> dict[str, Any]:
        try:
            participant = self.manager.disqualify_participant(tournament_id, participant_id)
            return {"participant": serialize_participant(participant)}
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to disqualify participant {participant_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_tournament_participants(self, tournament_id: int) -> dict[str, Any]:
        """Get all participants in a tournament."""
        try:
            participants = self.manager.get_participants(tournament_id)
            return {
                "tournament_id": tournament_id,
                "participants": [serialize_participant(p) for p in participants],
                "count": len(participants),
                "active_count": len(
                    [p for p in participants if p.eliminated_in_round is None]
                ),
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to get participants for tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def generate_bracket(
        self, tournament_id: int, request: GenerateBracketRequest
    ) -> dict[str, Any]:
        """GenerateBracket: seed the roster and build every match."""
        try:
            matches = self.manager.generate_bracket(
                tournament_id,
                request.seeding_policy,
                request.manual_order,
                request.regenerate,
            )
            tournament = self.manager.get_tournament(tournament_id)
            participants = self._participants_by_id(tournament_id)
            return {
                "tournament_id": tournament_id,
                "matches": [serialize_match(m, participants) for m in matches],
                "rounds": group_by_round(matches, participants, tournament.total_rounds),
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to generate bracket for tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_matches(
        self, tournament_id: int, round_number: int | None = None
    ) -> dict[str, Any]:
        """ListMatches: current match rows, grouped by round."""
        try:
            tournament = self.manager.get_tournament(tournament_id)
            matches = self.manager.list_matches(tournament_id, round_number)
            participants = self._participants_by_id(tournament_id)
            return {
                "tournament_id": tournament_id,
                "round_number": round_number,
                "matches": [serialize_match(m, participants) for m in matches],
                "rounds": group_by_round(matches, participants, tournament.total_rounds),
                "count": len(matches),
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to get matches for tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_bracket(self, tournament_id: int) -> dict[str, Any]:
        """Get tournament bracket visualization data."""
        try:
            bracket_data = self.manager.get_bracket_view(tournament_id)
            participants = {p.id: p for p in bracket_data.participants if p.id is not None}
            return {
                "tournament": serialize_tournament(bracket_data.tournament),
                "participants": [
                    serialize_participant(p) for p in bracket_data.participants
                ],
                "rounds": group_by_round(
                    bracket_data.matches,
                    participants,
                    bracket_data.tournament.total_rounds,
                ),
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to get bracket for tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def record_match_result(
        self, tournament_id: int, match_id: str, request: MatchResultRequest
    ) -> dict[str, Any]:
        """RecordMatchResult: finalize a match and advance its winner."""
        try:
            outcome = self.manager.record_match_result(
                tournament_id, match_id, request.score1, request.score2
            )
            participants = self._participants_by_id(tournament_id)
            return {
                "updated_match": serialize_match(outcome.match, participants),
                "updated_successor": (
                    serialize_match(outcome.successor, participants)
                    if outcome.successor
                    else None
                ),
                "tournament": serialize_tournament(outcome.tournament),
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to record result for match {match_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def start_match(self, tournament_id: int, match_id: str) -> dict[str, Any]:
        try:
            match = self.manager.start_match(tournament_id, match_id)
            return {"match": serialize_match(match, self._participants_by_id(tournament_id))}
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to start match {match_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def schedule_match(
        self, tournament_id: int, match_id: str, request: ScheduleMatchRequest
    ) -> dict[str, Any]:
        try:
            match = self.manager.schedule_match(
                tournament_id, match_id, request.scheduled_at
            )
            return {"match": serialize_match(match, self._participants_by_id(tournament_id))}
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(f"Failed to schedule match {match_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_round_status(
        self, tournament_id: int, round_number: int
    ) -> dict[str, Any]:
        """Get status of all matches in a specific round."""
        try:
            round_status = self.manager.get_round_status(tournament_id, round_number)
            resolved = round_status.completed_matches + round_status.bye_matches
            return {
                "tournament_id": tournament_id,
                **round_status.model_dump(),
                "completion_percentage": (
                    resolved / round_status.total_matches * 100
                    if round_status.total_matches > 0
                    else 0
                ),
            }
        except BracketEngineError as e:
            _raise_http(e)
        except Exception as e:
            logger.error(
                f"Failed to get round status for tournament {tournament_id}, "
                f"round {round_number}: {e}"
            )
            raise HTTPException(status_code=500, detail="Internal server error")
