from __future__ import annotations

from geoboard.services import rankings, top_games
from tests.testkit import at, create_player


def _game(db, factory, player, score, when, game_type="alps"):
    rankings.record_result(
        db,
        game_id=factory.next_game_id(),
        player_id=player.id,
        guest_id=None,
        game_type=game_type,
        total_score=score,
        average_score=score / 5,
        total_distance=1.0,
        completed_at=when,
    )
    db.commit()


def test_top_games_lists_individual_games(db, identity_factory):
    a = create_player(db, identity_factory, name="Ada Lovelace")
    b = create_player(db, identity_factory)
    _game(db, identity_factory, a, 90, at(2025, 6, 10, 9))
    _game(db, identity_factory, a, 70, at(2025, 6, 10, 10))
    _game(db, identity_factory, b, 90, at(2025, 6, 10, 11))
    _game(db, identity_factory, b, 10, at(2025, 6, 10, 12), game_type="world")

    rows = top_games.get_top_games(db, game_type="alps", limit=10)
    assert [(r.player_id, r.total_score) for r in rows] == [(a.id, 90), (b.id, 90), (a.id, 70)]
    assert [r.rank for r in rows] == [1, 2, 3]
    assert rows[0].player_name == "Ada L."

    page = top_games.get_top_games(db, game_type="alps", limit=2, offset=1)
    assert [r.rank for r in page] == [2, 3]


def test_top_games_period_window(db, identity_factory):
    a = create_player(db, identity_factory)
    _game(db, identity_factory, a, 99, at(2025, 6, 2))
    _game(db, identity_factory, a, 40, at(2025, 6, 10))

    now = at(2025, 6, 11)
    weekly = top_games.get_top_games(db, game_type="alps", period="weekly", limit=10, now=now)
    alltime = top_games.get_top_games(db, game_type="alps", period="alltime", limit=10, now=now)
    assert [r.total_score for r in weekly] == [40]
    assert [r.total_score for r in alltime] == [99, 40]


def test_user_game_rank_and_stats(db, identity_factory):
    a = create_player(db, identity_factory)
    b = create_player(db, identity_factory)
    for score in (80, 60):
        _game(db, identity_factory, a, score, at(2025, 6, 10))
    for score in (100, 90, 85):
        _game(db, identity_factory, b, score, at(2025, 6, 10))

    assert top_games.get_user_best_game_rank(db, player_id=a.id, game_type="alps") == 4
    stats = top_games.get_user_game_stats(db, player_id=a.id, game_type="alps")
    assert (stats.games_count, stats.best_score, stats.total_score, stats.rank, stats.total_games_count) == (
        2,
        80,
        140,
        4,
        5,
    )

    assert top_games.get_user_best_game_rank(db, player_id=a.id, game_type="world") is None
    assert top_games.get_user_game_stats(db, player_id=a.id, game_type="world") is None


def test_predict_rank_for_unrecorded_score(db, identity_factory):
    a = create_player(db, identity_factory)
    for score in (100, 80, 60):
        _game(db, identity_factory, a, score, at(2025, 6, 10))

    out = top_games.predict_rank(db, game_type="alps", score=90, period="weekly", now=at(2025, 6, 11))
    assert (out.predicted_rank, out.total_games) == (2, 4)

    top = top_games.predict_rank(db, game_type="alps", score=100, period="weekly", now=at(2025, 6, 11))
    assert top.predicted_rank == 1

    empty = top_games.predict_rank(db, game_type="world", score=5, now=at(2025, 6, 11))
    assert (empty.predicted_rank, empty.total_games) == (1, 1)


def test_period_window_excludes_games_after_it(db, identity_factory):
    a = create_player(db, identity_factory)
    _game(db, identity_factory, a, 50, at(2025, 6, 3))
    _game(db, identity_factory, a, 95, at(2025, 6, 10))

    now = at(2025, 6, 4)
    weekly = top_games.get_top_games(db, game_type="alps", period="weekly", limit=10, now=now)
    assert [r.total_score for r in weekly] == [50]

    predicted = top_games.predict_rank(db, game_type="alps", score=60, period="weekly", now=now)
    assert (predicted.predicted_rank, predicted.total_games) == (1, 2)

    stats = top_games.get_user_game_stats(db, player_id=a.id, game_type="alps", period="weekly", now=now)
    assert (stats.games_count, stats.best_score, stats.rank) == (1, 50, 1)
