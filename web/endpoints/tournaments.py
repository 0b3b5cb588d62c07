"""Tournament bracket endpoints."""

import logging
import random

from fastapi import APIRouter

from config.settings import get_default_config
from tournaments import (
    GenerateBracketRequest,
    MatchResultRequest,
    ParticipantCreateRequest,
    ScheduleMatchRequest,
    TournamentAPI,
    TournamentCreateRequest,
    TournamentManager,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# Tournament endpoints
tournament_manager: TournamentManager | None = None
tournament_api: TournamentAPI | None = None


def get_tournament_api() -> TournamentAPI:
    """Get or create tournament API instance."""
    global tournament_manager, tournament_api
    if tournament_api is None:
        config = get_default_config()
        rng = (
            random.Random(config.engine.random_seed)
            if config.engine.random_seed is not None
            else None
        )
        tournament_manager = TournamentManager(
            db_path=config.database.path,
            rng=rng,
            db_timeout=config.database.timeout,
            default_policy=config.engine.default_seeding_policy,
        )
        tournament_api = TournamentAPI(tournament_manager)
        logger.info(f"Tournament API ready (database: {config.database.path})")

    return tournament_api


def set_tournament_api(api: TournamentAPI | None) -> None:
    """Replace the shared API instance (used by tests and embedding apps)."""
    global tournament_manager, tournament_api
    tournament_api = api
    tournament_manager = api.manager if api else None


@router.post("/tournaments")
async def create_tournament(request: TournamentCreateRequest):
    """Create a new tournament."""
    return await get_tournament_api().create_tournament(request)


@router.get("/tournaments")
async def list_tournaments(limit: int | None = None, offset: int = 0):
    """List all tournaments."""
    return await get_tournament_api().list_tournaments(limit, offset)


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int):
    """Get tournament details."""
    return await get_tournament_api().get_tournament(tournament_id)


@router.delete("/tournaments/{tournament_id}")
async def delete_tournament(tournament_id: int):
    """Delete a tournament and all related data."""
    return await get_tournament_api().delete_tournament(tournament_id)


@router.post("/tournaments/{tournament_id}/open")
async def open_registration(tournament_id: int):
    """Open registration for a draft tournament."""
    return await get_tournament_api().open_registration(tournament_id)


@router.post("/tournaments/{tournament_id}/cancel")
async def cancel_tournament(tournament_id: int):
    """Cancel a tournament."""
    return await get_tournament_api().cancel_tournament(tournament_id)


@router.post("/tournaments/{tournament_id}/participants")
async def register_participant(tournament_id: int, request: ParticipantCreateRequest):
    """Add an entrant to the roster."""
    return await get_tournament_api().register_participant(tournament_id, request)


@router.get("/tournaments/{tournament_id}/participants")
async def get_tournament_participants(tournament_id: int):
    """Get all participants in a tournament."""
    return await get_tournament_api().get_tournament_participants(tournament_id)


@router.delete("/tournaments/{tournament_id}/participants/{participant_id}")
async def withdraw_participant(tournament_id: int, participant_id: int):
    """Withdraw an entrant before the draw."""
    return await get_tournament_api().withdraw_participant(tournament_id, participant_id)


@router.post("/tournaments/{tournament_id}/participants/{participant_id}/confirm")
async def confirm_participant(tournament_id: int, participant_id: int):
    """Confirm an entrant's place in the draw."""
    return await get_tournament_api().confirm_participant(tournament_id, participant_id)


@router.post("/tournaments/{tournament_id}/participants/{participant_id}/disqualify")
async def disqualify_participant(tournament_id: int, participant_id: int):
    """Disqualify an entrant before the draw."""
    return await get_tournament_api().disqualify_participant(tournament_id, participant_id)


@router.post("/tournaments/{tournament_id}/bracket")
async def generate_bracket(tournament_id: int, request: GenerateBracketRequest):
    """Seed the roster and generate the bracket."""
    return await get_tournament_api().generate_bracket(tournament_id, request)


@router.get("/tournaments/{tournament_id}/bracket")
async def get_tournament_bracket(tournament_id: int):
    """Get tournament bracket visualization data."""
    return await get_tournament_api().get_bracket(tournament_id)


@router.get("/tournaments/{tournament_id}/matches")
async def get_tournament_matches(tournament_id: int, round_number: int | None = None):
    """Get tournament matches, optionally filtered by round."""
    return await get_tournament_api().get_matches(tournament_id, round_number)


@router.post("/tournaments/{tournament_id}/matches/{match_id}/result")
async def record_match_result(
    tournament_id: int, match_id: str, request: MatchResultRequest
):
    """Record the score of a played match."""
    return await get_tournament_api().record_match_result(tournament_id, match_id, request)


@router.post("/tournaments/{tournament_id}/matches/{match_id}/start")
async def start_match(tournament_id: int, match_id: str):
    """Mark a scheduled match as in progress."""
    return await get_tournament_api().start_match(tournament_id, match_id)


@router.post("/tournaments/{tournament_id}/matches/{match_id}/schedule")
async def schedule_match(
    tournament_id: int, match_id: str, request: ScheduleMatchRequest
):
    """Set the planned start time of a match."""
    return await get_tournament_api().schedule_match(tournament_id, match_id, request)


@router.get("/tournaments/{tournament_id}/rounds/{round_number}/status")
async def get_round_status(tournament_id: int, round_number: int):
    """Get status of all matches in a specific round."""
    return await get_tournament_api().get_round_status(tournament_id, round_number)
