import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pong_tournament.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from pong_tournament.models import Match, MatchStatus, TournamentStatus


async def _match_ids(ledger, tournament_id: int) -> list[int]:
    return [match.id for match in await ledger.list_matches(tournament_id)]


async def _count_matches(test_session, tournament_id: int, round_number: int | None = None) -> int:
    stmt = select(func.count()).select_from(Match).where(Match.tournament_id == tournament_id)
    if round_number is not None:
        stmt = stmt.where(Match.round == round_number)
    result = await test_session.execute(stmt)
    return result.scalar()


@pytest.mark.asyncio
async def test_four_player_cup_runs_to_champion(test_session, registry, ledger, started_cup_id):
    first_id, second_id = await _match_ids(ledger, started_cup_id)

    result = await ledger.record_match_result(started_cup_id, first_id, "A", 5, 2)
    assert result.match.status == MatchStatus.completed
    assert result.match.winner_alias == "A"
    assert result.match.completed_at is not None
    assert result.next_round_matches == []
    assert result.tournament_status == TournamentStatus.in_progress
    assert await _count_matches(test_session, started_cup_id, round_number=2) == 0

    result = await ledger.record_match_result(started_cup_id, second_id, "C", 5, 3)
    assert len(result.next_round_matches) == 1
    final = result.next_round_matches[0]
    assert (final.round, final.match_number) == (2, 1)
    assert (final.player1_alias, final.player2_alias) == ("A", "C")
    assert final.status == MatchStatus.pending
    assert result.tournament_status == TournamentStatus.in_progress

    result = await ledger.record_match_result(started_cup_id, final.id, "A", 5, 1)
    assert result.tournament_status == TournamentStatus.completed
    assert result.champion_alias == "A"
    assert result.next_round_matches == []

    tournament = await registry.get_tournament(started_cup_id)
    await test_session.refresh(tournament)
    assert tournament.status == TournamentStatus.completed
    assert tournament.champion_alias == "A"
    assert tournament.completed_at is not None
    assert await _count_matches(test_session, started_cup_id) == 3


@pytest.mark.asyncio
async def test_recording_twice_is_rejected_and_keeps_first_result(ledger, started_cup_id):
    first_id, _ = await _match_ids(ledger, started_cup_id)
    await ledger.record_match_result(started_cup_id, first_id, "A", 5, 2)

    with pytest.raises(ConflictError, match="Match already completed"):
        await ledger.record_match_result(started_cup_id, first_id, "B", 1, 5)

    first = (await ledger.list_matches(started_cup_id))[0]
    assert first.winner_alias == "A"
    assert (first.player1_score, first.player2_score) == (5, 2)


@pytest.mark.asyncio
async def test_winner_must_be_a_match_player(ledger, started_cup_id):
    first_id, _ = await _match_ids(ledger, started_cup_id)

    with pytest.raises(ValidationError, match="Winner must be one of the match players"):
        await ledger.record_match_result(started_cup_id, first_id, "C", 5, 2)

    first = (await ledger.list_matches(started_cup_id))[0]
    assert first.status == MatchStatus.pending
    assert first.winner_alias is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "winner, score1, score2",
    [(None, 5, 2), ("", 5, 2), ("A", None, 2), ("A", 5, None)],
)
async def test_winner_and_scores_are_required(ledger, started_cup_id, winner, score1, score2):
    first_id, _ = await _match_ids(ledger, started_cup_id)

    with pytest.raises(ValidationError, match="Winner and scores are required"):
        await ledger.record_match_result(started_cup_id, first_id, winner, score1, score2)


@pytest.mark.asyncio
async def test_zero_scores_are_accepted(ledger, started_cup_id):
    first_id, _ = await _match_ids(ledger, started_cup_id)

    result = await ledger.record_match_result(started_cup_id, first_id, "B", 0, 0)

    assert result.match.winner_alias == "B"
    assert (result.match.player1_score, result.match.player2_score) == (0, 0)


@pytest.mark.asyncio
async def test_unknown_match_is_not_found(ledger, registry, started_cup_id):
    with pytest.raises(NotFoundError, match="Match not found"):
        await ledger.record_match_result(started_cup_id, 9999, "A", 5, 2)

    # A match id that belongs to another tournament
    other = await registry.create_tournament("Other", 2)
    other_id = other.id
    first_id, _ = await _match_ids(ledger, started_cup_id)
    with pytest.raises(NotFoundError, match="Match not found"):
        await ledger.record_match_result(other_id, first_id, "A", 5, 2)


@pytest.mark.asyncio
async def test_unknown_tournament_is_not_found(ledger):
    with pytest.raises(NotFoundError, match="Tournament not found"):
        await ledger.record_match_result(9999, 1, "A", 5, 2)
    with pytest.raises(NotFoundError):
        await ledger.list_matches(9999)


@pytest.mark.asyncio
async def test_eight_player_tournament_plays_out(
    test_session, registry, bracket_engine, ledger, join_players
):
    tournament = await registry.create_tournament("Big", 8)
    tournament_id = tournament.id
    aliases = [f"P{i}" for i in range(1, 9)]
    await join_players(tournament_id, aliases)
    await bracket_engine.start_tournament(tournament_id)

    # Player 1 of every match wins
    result = None
    for expected_round, expected_matches in ((1, 4), (2, 2), (3, 1)):
        pending = [
            m for m in await ledger.list_matches(tournament_id) if m.status == MatchStatus.pending
        ]
        assert [m.round for m in pending] == [expected_round] * expected_matches
        for match in pending:
            result = await ledger.record_match_result(
                tournament_id, match.id, match.player1_alias, 11, 7
            )

    assert result.tournament_status == TournamentStatus.completed
    assert result.champion_alias == "P1"

    matches = await ledger.list_matches(tournament_id)
    assert len(matches) == 7
    round_two = [(m.player1_alias, m.player2_alias) for m in matches if m.round == 2]
    assert round_two == [("P1", "P3"), ("P5", "P7")]
    final = [m for m in matches if m.round == 3]
    assert (final[0].player1_alias, final[0].player2_alias) == ("P1", "P5")


@pytest.mark.asyncio
async def test_auto_progress_is_idempotent(test_session, ledger, started_cup_id):
    first_id, second_id = await _match_ids(ledger, started_cup_id)
    await ledger.record_match_result(started_cup_id, first_id, "B", 2, 5)
    await ledger.record_match_result(started_cup_id, second_id, "D", 4, 6)

    outcome = await ledger.auto_progress(started_cup_id)
    await test_session.commit()

    assert outcome.created_matches == []
    assert outcome.status == TournamentStatus.in_progress
    assert await _count_matches(test_session, started_cup_id, round_number=2) == 1


@pytest.mark.asyncio
async def test_concurrently_created_round_is_not_duplicated(
    test_session, ledger, started_cup_id, monkeypatch
):
    first_id, second_id = await _match_ids(ledger, started_cup_id)
    await ledger.record_match_result(started_cup_id, first_id, "A", 5, 2)

    # Another writer already created round 2
    test_session.add(
        Match(
            tournament_id=started_cup_id,
            round=2,
            match_number=1,
            player1_alias="A",
            player2_alias="C",
            status=MatchStatus.pending,
        )
    )
    await test_session.commit()

    # and this request read the bracket before that insert
    load_matches = ledger._load_matches

    async def stale_load(tournament_id):
        return [m for m in await load_matches(tournament_id) if m.round == 1]

    monkeypatch.setattr(ledger, "_load_matches", stale_load)

    result = await ledger.record_match_result(started_cup_id, second_id, "C", 5, 3)

    assert result.next_round_matches == []
    assert result.match.status == MatchStatus.completed
    monkeypatch.undo()

    assert await _count_matches(test_session, started_cup_id, round_number=2) == 1
    second = [m for m in await ledger.list_matches(started_cup_id) if m.id == second_id][0]
    assert second.winner_alias == "C"


@pytest.mark.asyncio
async def test_bracket_view_labels_rounds(registry, ledger, started_cup_id):
    view = await ledger.get_bracket(started_cup_id)

    assert view.tournament.id == started_cup_id
    assert [(r.round, r.label, len(r.matches)) for r in view.rounds] == [
        (1, "semi-final", 2),
        (2, "final", 0),
    ]

    big = await registry.create_tournament("Sixteen", 16)
    view = await ledger.get_bracket(big.id)
    assert [r.label for r in view.rounds] == ["round of 16", "quarter-final", "semi-final", "final"]
    assert all(r.matches == [] for r in view.rounds)


@pytest.mark.asyncio
async def test_negative_scores_are_rejected(ledger, started_cup_id):
    first_id, _ = await _match_ids(ledger, started_cup_id)

    with pytest.raises(ValidationError, match="Scores must not be negative"):
        await ledger.record_match_result(started_cup_id, first_id, "A", -1, 5)

    first = (await ledger.list_matches(started_cup_id))[0]
    assert first.status == MatchStatus.pending


async def _fail_storage(*args, **kwargs):
    raise OperationalError("INSERT INTO matches", {}, Exception("disk I/O error"))


@pytest.mark.asyncio
async def test_failed_round_creation_rolls_back_the_result(
    test_session, ledger, started_cup_id, monkeypatch
):
    first_id, second_id = await _match_ids(ledger, started_cup_id)
    await ledger.record_match_result(started_cup_id, first_id, "A", 5, 2)
    monkeypatch.setattr(ledger, "_create_next_round", _fail_storage)

    with pytest.raises(PersistenceError):
        await ledger.record_match_result(started_cup_id, second_id, "C", 5, 3)

    second = [m for m in await ledger.list_matches(started_cup_id) if m.id == second_id][0]
    assert second.status == MatchStatus.pending
    assert second.winner_alias is None
    assert (second.player1_score, second.player2_score) == (None, None)
    assert await _count_matches(test_session, started_cup_id, round_number=2) == 0

    # The same result goes through once storage recovers
    monkeypatch.undo()
    result = await ledger.record_match_result(started_cup_id, second_id, "C", 5, 3)
    assert len(result.next_round_matches) == 1


@pytest.mark.asyncio
async def test_failed_completion_rolls_back_the_final(
    registry, ledger, started_cup_id, monkeypatch
):
    first_id, second_id = await _match_ids(ledger, started_cup_id)
    await ledger.record_match_result(started_cup_id, first_id, "A", 5, 2)
    result = await ledger.record_match_result(started_cup_id, second_id, "C", 5, 3)
    final_id = result.next_round_matches[0].id
    monkeypatch.setattr(ledger, "_complete_tournament", _fail_storage)

    with pytest.raises(PersistenceError):
        await ledger.record_match_result(started_cup_id, final_id, "A", 5, 1)

    final = [m for m in await ledger.list_matches(started_cup_id) if m.id == final_id][0]
    assert final.status == MatchStatus.pending
    assert final.winner_alias is None
    tournament = await registry.get_tournament(started_cup_id)
    assert tournament.status == TournamentStatus.in_progress
    assert tournament.champion_alias is None
