"""Integration tests for TournamentManager against a real SQLite file."""

import threading
from datetime import datetime

import pytest

from tournaments import (
    MatchStatus,
    ParticipantCreateRequest,
    ParticipantStatus,
    SeedingPolicy,
    TournamentCreateRequest,
    TournamentFormat,
    TournamentManager,
    TournamentStatus,
)
from tournaments.exceptions import (
    AlreadyInProgress,
    CapacityExceeded,
    ConcurrencyConflict,
    DuplicateParticipant,
    InsufficientParticipants,
    InvalidScore,
    InvalidSeeding,
    InvalidTournamentState,
    MatchNotFound,
    MatchNotPlayable,
    ParticipantNotFound,
    TournamentNotFound,
    UnsupportedFormat,
)

pytestmark = pytest.mark.integration


def match_at(manager: TournamentManager, tournament_id: int, round_number: int, position: int):
    return next(
        m
        for m in manager.list_matches(tournament_id, round_number)
        if m.bracket_position == position
    )


def play_round(manager: TournamentManager, tournament_id: int, round_number: int) -> None:
    """Slot 1 wins every playable match of the round."""
    for match in manager.list_matches(tournament_id, round_number):
        if match.status == MatchStatus.SCHEDULED:
            manager.record_match_result(tournament_id, match.id, 3, 1)


class TestTournamentLifecycle:
    def test_create_starts_in_draft(self, manager):
        tournament = manager.create_tournament(TournamentCreateRequest(name="Spring Cup"))

        assert tournament.id is not None
        assert tournament.status == TournamentStatus.DRAFT
        assert tournament.capacity == 16
        assert tournament.created_at is not None

    def test_open_registration_only_from_draft(self, manager):
        tournament = manager.create_tournament(TournamentCreateRequest(name="Spring Cup"))

        assert manager.open_registration(tournament.id).status == TournamentStatus.OPEN
        with pytest.raises(InvalidTournamentState):
            manager.open_registration(tournament.id)

    def test_unknown_tournament(self, manager):
        with pytest.raises(TournamentNotFound):
            manager.get_tournament(999)
        with pytest.raises(TournamentNotFound):
            manager.generate_bracket(999)

    def test_list_tournaments(self, manager):
        for name in ("A", "B", "C"):
            manager.create_tournament(TournamentCreateRequest(name=name))

        assert len(manager.list_tournaments()) == 3
        assert len(manager.list_tournaments(limit=2)) == 2

    def test_cancelled_tournament_rejects_bracket(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4, generate=False)
        manager.cancel_tournament(tournament.id)

        with pytest.raises(InvalidTournamentState):
            manager.generate_bracket(tournament.id)

    def test_delete_removes_everything(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)

        assert manager.delete_tournament(tournament.id)
        assert manager.db.get_matches(tournament.id) == []
        assert manager.db.get_participants(tournament.id) == []
        assert not manager.delete_tournament(tournament.id)


class TestRoster:
    def test_capacity_is_enforced(self, manager):
        tournament = manager.create_tournament(
            TournamentCreateRequest(name="Small", capacity=2)
        )
        manager.register_participant(tournament.id, ParticipantCreateRequest(name="Ana"))
        manager.register_participant(tournament.id, ParticipantCreateRequest(name="Bo"))

        with pytest.raises(CapacityExceeded):
            manager.register_participant(
                tournament.id, ParticipantCreateRequest(name="Cy")
            )

    def test_duplicate_name_rejected(self, manager):
        tournament = manager.create_tournament(TournamentCreateRequest(name="Cup"))
        manager.register_participant(tournament.id, ParticipantCreateRequest(name="Ana"))

        with pytest.raises(DuplicateParticipant):
            manager.register_participant(
                tournament.id, ParticipantCreateRequest(name="Ana", club="Other")
            )

    def test_withdrawn_participant_frees_a_place_and_skips_the_draw(
        self, manager, seeded_tournament
    ):
        tournament, by_seed = seeded_tournament(3, generate=False)
        manager.withdraw_participant(tournament.id, by_seed[2].id)

        matches = manager.generate_bracket(tournament.id)

        seated = {p for m in matches for p in m.slots if p is not None}
        assert seated == {by_seed[1].id, by_seed[3].id}
        assert len(matches) == 1

    def test_confirmed_participant_stays_in_the_draw(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(2, generate=False)

        confirmed = manager.confirm_participant(tournament.id, by_seed[1].id)
        assert confirmed.status == ParticipantStatus.CONFIRMED

        matches = manager.generate_bracket(tournament.id)
        assert matches[0].slots == (by_seed[1].id, by_seed[2].id)

    def test_disqualified_participant_leaves_the_draw(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(3, generate=False)

        manager.disqualify_participant(tournament.id, by_seed[1].id)

        roster = {p.id: p.status for p in manager.get_participants(tournament.id)}
        assert roster[by_seed[1].id] == ParticipantStatus.DISQUALIFIED
        matches = manager.generate_bracket(tournament.id)
        assert matches[0].slots == (by_seed[2].id, by_seed[3].id)

    def test_disqualified_participant_cannot_be_confirmed(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(2, generate=False)
        manager.disqualify_participant(tournament.id, by_seed[2].id)

        with pytest.raises(InvalidTournamentState):
            manager.confirm_participant(tournament.id, by_seed[2].id)

    def test_withdraw_unknown_participant(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(2, generate=False)

        with pytest.raises(ParticipantNotFound):
            manager.withdraw_participant(tournament.id, 999)

    def test_registration_closes_once_bracket_exists(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)

        with pytest.raises(InvalidTournamentState):
            manager.register_participant(
                tournament.id, ParticipantCreateRequest(name="Late")
            )


class TestGenerateBracket:
    def test_five_players_bracket(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(5)

        matches = manager.list_matches(tournament.id)
        assert len(matches) == 7
        assert tournament.status == TournamentStatus.IN_PROGRESS
        assert tournament.total_rounds == 3
        assert tournament.started_at is not None

        first_round = manager.list_matches(tournament.id, 1)
        assert [m.is_bye for m in first_round] == [True, False, True, True]
        assert first_round[1].slots == (by_seed[4].id, by_seed[5].id)

        lower_semi = match_at(manager, tournament.id, 2, 1)
        assert lower_semi.slots == (by_seed[2].id, by_seed[3].id)
        assert lower_semi.status == MatchStatus.SCHEDULED

    def test_single_participant_rejected(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(1, generate=False)

        with pytest.raises(InsufficientParticipants):
            manager.generate_bracket(tournament.id)
        assert manager.list_matches(tournament.id) == []

    def test_unsupported_format(self, manager):
        tournament = manager.create_tournament(
            TournamentCreateRequest(name="League", format=TournamentFormat.ROUND_ROBIN)
        )
        for name in ("Ana", "Bo"):
            manager.register_participant(tournament.id, ParticipantCreateRequest(name=name))

        with pytest.raises(UnsupportedFormat):
            manager.generate_bracket(tournament.id)

    def test_manual_seeding(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(4, generate=False)
        order = [by_seed[4].id, by_seed[3].id, by_seed[2].id, by_seed[1].id]

        manager.generate_bracket(tournament.id, SeedingPolicy.MANUAL, manual_order=order)

        first = match_at(manager, tournament.id, 1, 0)
        assert first.slots == (by_seed[4].id, by_seed[1].id)

    def test_random_seeding_seats_everyone(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(6, policy=SeedingPolicy.RANDOM)

        seated = {
            p for m in manager.list_matches(tournament.id, 1) for p in m.slots if p
        }
        assert seated == {p.id for p in by_seed.values()}

    def test_regenerate_before_any_result_replaces_bracket(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        old_ids = {m.id for m in manager.list_matches(tournament.id)}

        manager.generate_bracket(tournament.id)

        new_ids = {m.id for m in manager.list_matches(tournament.id)}
        assert len(new_ids) == 3
        assert old_ids.isdisjoint(new_ids)

    def test_regenerate_after_results_is_rejected_without_side_effects(
        self, manager, seeded_tournament
    ):
        tournament, _ = seeded_tournament(4)
        play_round(manager, tournament.id, 1)
        before = manager.list_matches(tournament.id)

        with pytest.raises(AlreadyInProgress):
            manager.generate_bracket(tournament.id)

        assert manager.list_matches(tournament.id) == before

    def test_explicit_regenerate_discards_results(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        play_round(manager, tournament.id, 1)

        manager.generate_bracket(tournament.id, regenerate=True)

        matches = manager.list_matches(tournament.id)
        assert not any(m.status == MatchStatus.COMPLETED for m in matches)
        assert all(
            p.eliminated_in_round is None for p in manager.get_participants(tournament.id)
        )


    def test_finished_tournament_reports_played_results(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(2)
        final = manager.list_matches(tournament.id)[0]
        manager.record_match_result(tournament.id, final.id, 3, 1)

        with pytest.raises(AlreadyInProgress):
            manager.generate_bracket(tournament.id, SeedingPolicy.RANKED)
        with pytest.raises(InvalidTournamentState):
            manager.generate_bracket(tournament.id, regenerate=True)

        assert manager.get_tournament(tournament.id).status == TournamentStatus.COMPLETED

    def test_default_policy_used_when_none_given(self, tmp_path):
        manual = TournamentManager(
            db_path=str(tmp_path / "manual.db"), default_policy=SeedingPolicy.MANUAL
        )
        tournament = manual.create_tournament(TournamentCreateRequest(name="Manual Cup"))
        for name in ("Ana", "Bo"):
            manual.register_participant(tournament.id, ParticipantCreateRequest(name=name))

        with pytest.raises(InvalidSeeding):
            manual.generate_bracket(tournament.id)
        assert manual.list_matches(tournament.id) == []


class TestRecordResult:
    def test_eight_player_first_round_feeds_semifinals(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(8)

        play_round(manager, tournament.id, 1)

        upper = match_at(manager, tournament.id, 2, 0)
        lower = match_at(manager, tournament.id, 2, 1)
        assert upper.slots == (by_seed[1].id, by_seed[4].id)
        assert lower.slots == (by_seed[2].id, by_seed[3].id)
        assert upper.status == lower.status == MatchStatus.SCHEDULED

        losers = {
            p.id: p.eliminated_in_round for p in manager.get_participants(tournament.id)
        }
        assert losers[by_seed[8].id] == 1
        assert losers[by_seed[1].id] is None

    def test_outcome_reports_successor(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(5)
        play_in = match_at(manager, tournament.id, 1, 1)

        outcome = manager.record_match_result(tournament.id, play_in.id, 2, 6)

        assert outcome.match.winner_id == by_seed[5].id
        assert outcome.successor.slots == (by_seed[1].id, by_seed[5].id)
        assert outcome.successor.status == MatchStatus.SCHEDULED
        assert outcome.tournament.status == TournamentStatus.IN_PROGRESS

    def test_two_player_final_completes_tournament(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(2)
        final = manager.list_matches(tournament.id)[0]

        outcome = manager.record_match_result(tournament.id, final.id, 1, 3)

        assert outcome.successor is None
        assert outcome.tournament.status == TournamentStatus.COMPLETED
        assert outcome.tournament.champion_id == by_seed[2].id
        assert outcome.tournament.completed_at is not None

    def test_full_tournament_to_champion(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(6)

        for round_number in range(1, tournament.total_rounds + 1):
            play_round(manager, tournament.id, round_number)

        finished = manager.get_tournament(tournament.id)
        assert finished.status == TournamentStatus.COMPLETED
        assert finished.champion_id == by_seed[1].id
        active = [
            p for p in manager.get_participants(tournament.id) if p.eliminated_in_round is None
        ]
        assert [p.id for p in active] == [by_seed[1].id]

    def test_completed_tournament_rejects_results(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(2)
        final = manager.list_matches(tournament.id)[0]
        manager.record_match_result(tournament.id, final.id, 3, 1)

        with pytest.raises(InvalidTournamentState):
            manager.record_match_result(tournament.id, final.id, 3, 1)

    def test_tied_score_rejected_without_change(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        match = match_at(manager, tournament.id, 1, 0)

        with pytest.raises(InvalidScore):
            manager.record_match_result(tournament.id, match.id, 2, 2)

        assert match_at(manager, tournament.id, 1, 0) == match

    def test_bye_match_rejects_result(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(3)
        bye = match_at(manager, tournament.id, 1, 0)
        assert bye.status == MatchStatus.BYE

        with pytest.raises(MatchNotPlayable):
            manager.record_match_result(tournament.id, bye.id, 1, 0)

    def test_pending_match_rejects_result(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        final = match_at(manager, tournament.id, 2, 0)

        with pytest.raises(MatchNotPlayable):
            manager.record_match_result(tournament.id, final.id, 1, 0)

    def test_unknown_match(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)

        with pytest.raises(MatchNotFound):
            manager.record_match_result(tournament.id, "nope", 1, 0)

    def test_unknown_match_reported_before_tied_score(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)

        with pytest.raises(MatchNotFound):
            manager.record_match_result(tournament.id, "nope", 2, 2)

    def test_listing_is_idempotent(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(7)
        play_round(manager, tournament.id, 1)

        assert manager.list_matches(tournament.id) == manager.list_matches(tournament.id)


class TestMatchControl:
    def test_start_then_record(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        match = match_at(manager, tournament.id, 1, 0)

        started = manager.start_match(tournament.id, match.id)
        assert started.status == MatchStatus.IN_PROGRESS

        outcome = manager.record_match_result(tournament.id, match.id, 6, 3)
        assert outcome.match.status == MatchStatus.COMPLETED

    def test_schedule_time_is_stored(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        final = match_at(manager, tournament.id, 2, 0)
        when = datetime(2024, 7, 14, 19, 0)

        manager.schedule_match(tournament.id, final.id, when)

        assert match_at(manager, tournament.id, 2, 0).scheduled_at == when

    def test_round_status(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(5)

        status = manager.get_round_status(tournament.id, 1)

        assert status.total_matches == 4
        assert status.bye_matches == 3
        assert status.scheduled_matches == 1
        assert not status.all_completed

        play_round(manager, tournament.id, 1)
        assert manager.get_round_status(tournament.id, 1).all_completed


class TestConcurrency:
    def test_stale_snapshot_conflicts(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(4)
        stale = match_at(manager, tournament.id, 1, 0)
        manager.record_match_result(tournament.id, stale.id, 2, 0)

        replay = stale.model_copy()
        replay.participant1_score, replay.participant2_score = 0, 2
        replay.winner_id = replay.participant2_id
        replay.status = MatchStatus.COMPLETED

        with pytest.raises(ConcurrencyConflict) as exc_info:
            manager.db.update_match(replay, stale)
        assert exc_info.value.retryable

    def test_sibling_results_recorded_concurrently(self, manager, seeded_tournament):
        tournament, by_seed = seeded_tournament(4)
        siblings = manager.list_matches(tournament.id, 1)
        errors = []

        def record(match_id):
            try:
                manager.record_match_result(tournament.id, match_id, 4, 2)
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)

        threads = [threading.Thread(target=record, args=(m.id,)) for m in siblings]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        final = match_at(manager, tournament.id, 2, 0)
        assert final.slots == (by_seed[1].id, by_seed[2].id)
        assert final.status == MatchStatus.SCHEDULED

    def test_same_match_recorded_once(self, manager, seeded_tournament):
        tournament, _ = seeded_tournament(2)
        final = manager.list_matches(tournament.id)[0]
        # A second manager shares the database file but not the locks
        other = TournamentManager(db_path=str(manager.db.db_path))
        outcomes, errors = [], []

        def record(target, score1, score2):
            try:
                outcomes.append(
                    target.record_match_result(tournament.id, final.id, score1, score2)
                )
            except Exception as e:  # surfaced through the assertions below
                errors.append(e)

        threads = [
            threading.Thread(target=record, args=(manager, 3, 0)),
            threading.Thread(target=record, args=(other, 0, 3)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(outcomes) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], (InvalidTournamentState, MatchNotPlayable))
        stored = manager.get_tournament(tournament.id)
        assert stored.champion_id == outcomes[0].match.winner_id
