from __future__ import annotations

import pytest
from jose import jwt

from geoboard.core.config import settings
from geoboard.services import notifications
from tests.testkit import ApiError, complete_duel, create_player, record_game


@pytest.mark.regression
def test_regression_health_and_headers(api, db, service_token, identity_factory):
    assert api.call("GET", "/health") == {"ok": True}
    resp = api.client.get("/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["Referrer-Policy"] == "no-referrer"
    assert "X-Frame-Options" not in resp.headers
    assert "Content-Security-Policy" not in resp.headers
    assert "Cache-Control" not in resp.headers

    p = create_player(db, identity_factory)
    write = api.client.post(
        "/rankings/results",
        headers={"Authorization": f"Bearer {service_token}"},
        json={
            "game_id": identity_factory.next_game_id(),
            "player_id": p.id,
            "game_type": "alps",
            "total_score": 10,
            "average_score": 2.0,
            "total_distance": 1.0,
        },
    )
    assert write.status_code == 200
    assert write.headers["Cache-Control"] == "no-store"


@pytest.mark.regression
def test_regression_writes_require_service_token(api, db, identity_factory):
    p = create_player(db, identity_factory)

    with pytest.raises(ApiError) as no_token:
        record_game(api, None, identity_factory, game_type="alps", total_score=10, player_id=p.id)
    assert no_token.value.status_code in (401, 403)

    with pytest.raises(ApiError) as bad_token:
        record_game(api, "not-a-jwt", identity_factory, game_type="alps", total_score=10, player_id=p.id)
    assert bad_token.value.status_code == 401

    access = jwt.encode({"sub": p.id, "type": "access"}, settings.SERVICE_JWT_SECRET, algorithm="HS256")
    with pytest.raises(ApiError) as wrong_type:
        record_game(api, access, identity_factory, game_type="alps", total_score=10, player_id=p.id)
    assert wrong_type.value.status_code == 401


@pytest.mark.regression
def test_regression_record_and_read_rankings(api, db, service_token, identity_factory):
    a = create_player(db, identity_factory, name="Grace Hopper")
    b = create_player(db, identity_factory, nickname="bee")

    first = record_game(api, service_token, identity_factory, game_type="alps", total_score=80, player_id=a.id, game_id="dup-1")
    assert first == {"game_id": "dup-1", "recorded": True}
    again = record_game(api, service_token, identity_factory, game_type="alps", total_score=80, player_id=a.id, game_id="dup-1")
    assert again["recorded"] is False

    record_game(api, service_token, identity_factory, game_type="alps", total_score=95, player_id=b.id)
    record_game(api, service_token, identity_factory, game_type="alps", total_score=30, player_id=a.id)

    daily = api.call("GET", "/rankings/alps/daily")
    assert daily["sort_by"] == "best"
    assert daily["limit"] == settings.RANKINGS_DEFAULT_LIMIT
    assert [(r["player_name"], r["rank"], r["position"]) for r in daily["rows"]] == [
        ("bee", 1, 1),
        ("Grace H.", 2, 2),
    ]

    by_total = api.call("GET", "/rankings/alps/daily", params={"sort_by": "total"})
    assert [(r["player_id"], r["total_score"], r["rank"], r["position"]) for r in by_total["rows"]] == [
        (a.id, 110, 2, 1),
        (b.id, 95, 1, 2),
    ]

    overall = api.call("GET", "/rankings/overall/alltime", params={"limit": 1})
    assert [r["player_id"] for r in overall["rows"]] == [b.id]

    mine = api.call("GET", f"/rankings/alps/weekly/players/{a.id}")
    assert (mine["rank"], mine["total_games"], mine["best_score"]) == (2, 2, 80)
    assert api.call("GET", f"/rankings/world/weekly/players/{a.id}") is None

    summary = api.call("GET", f"/rankings/players/{a.id}/summary")
    assert (summary["total_games"], summary["total_score"], summary["best_rank"]) == (2, 110, 2)


@pytest.mark.regression
def test_regression_ranking_input_validation(api, db, service_token, identity_factory):
    p = create_player(db, identity_factory)

    with pytest.raises(ApiError) as both_ids:
        record_game(api, service_token, identity_factory, game_type="alps", total_score=5, player_id=p.id, guest_id="g")
    assert both_ids.value.status_code == 422

    with pytest.raises(ApiError) as unknown_player:
        record_game(api, service_token, identity_factory, game_type="alps", total_score=5, player_id="ghost")
    assert unknown_player.value.status_code == 400

    with pytest.raises(ApiError) as overall_write:
        record_game(api, service_token, identity_factory, game_type="overall", total_score=5, player_id=p.id)
    assert overall_write.value.status_code == 400

    for path, params in [
        ("/rankings/alps/yearly", None),
        ("/rankings/alps/daily", {"sort_by": "worst"}),
        ("/rankings/alps/daily", {"limit": 0}),
        ("/rankings/alps/daily", {"limit": settings.MAX_PAGE_SIZE + 1}),
        ("/rankings/alps/daily", {"offset": -1}),
        ("/games/alps/top", {"period": "hourly"}),
    ]:
        with pytest.raises(ApiError) as bad_query:
            api.call("GET", path, params=params)
        assert bad_query.value.status_code == 400, path


@pytest.mark.regression
def test_regression_guest_migration_and_top_games(api, db, service_token, identity_factory):
    p = create_player(db, identity_factory)
    guest = identity_factory.next_guest_id()
    record_game(api, service_token, identity_factory, game_type="alps", total_score=50, guest_id=guest)
    record_game(api, service_token, identity_factory, game_type="alps", total_score=70, guest_id=guest)

    assert api.call("GET", "/rankings/alps/alltime")["rows"] == []
    top = api.call("GET", "/games/alps/top")
    assert [(r["total_score"], r["player_id"], r["player_name"]) for r in top["rows"]] == [
        (70, None, "Anonym"),
        (50, None, "Anonym"),
    ]

    predicted = api.call("GET", "/games/alps/predict", params={"score": 60})
    assert (predicted["predicted_rank"], predicted["total_games"]) == (2, 3)

    out = api.call(
        "POST",
        "/rankings/guest-migrations",
        token=service_token,
        body={"guest_id": guest, "player_id": p.id},
    )
    assert out["migrated_games"] == 2
    assert (out["stats"]["total_games"], out["stats"]["total_score"], out["stats"]["best_score"]) == (2, 120, 70)

    replay = api.call(
        "POST",
        "/rankings/guest-migrations",
        token=service_token,
        body={"guest_id": guest, "player_id": p.id},
    )
    assert replay["migrated_games"] == 0
    assert replay["stats"]["total_games"] == 2

    stats = api.call("GET", f"/games/alps/players/{p.id}")
    assert (stats["games_count"], stats["best_score"], stats["rank"]) == (2, 70, 1)
    assert api.call("GET", f"/games/world/players/{p.id}") is None


@pytest.mark.regression
def test_regression_duel_flow(api, db, service_token, identity_factory):
    a = create_player(db, identity_factory, name="Alan Turing")
    b = create_player(db, identity_factory, name="Barbara Liskov")

    first = complete_duel(api, service_token, identity_factory, game_type="alps", challenger=(a.id, 4000, 90), accepter=(b.id, 3000, 60))
    assert (first["winner_id"], first["loser_id"], first["points_earned"], first["created"]) == (a.id, b.id, 6, True)

    second = complete_duel(api, service_token, identity_factory, game_type="alps", challenger=(b.id, 5000, 90), accepter=(a.id, 5000, 80))
    assert (second["winner_id"], second["points_earned"]) == (a.id, 3)

    board = api.call("GET", "/duels/leaderboard/alps")
    assert [(r["player_id"], r["rank"], r["duel_points"], r["wins"]) for r in board["rows"]] == [
        (a.id, 1, 9, 2),
        (b.id, 2, 0, 0),
    ]

    overall = api.call("GET", "/duels/leaderboard")
    assert overall["game_type"] == "overall"
    assert [r["player_id"] for r in overall["rows"]] == [a.id, b.id]

    stats = api.call("GET", f"/duels/players/{b.id}/stats/alps")
    assert (stats["losses"], stats["total_duels"], stats["win_rate"], stats["rank"]) == (2, 2, 0.0, 2)
    assert api.call("GET", f"/duels/players/{b.id}/stats/world") is None

    history = api.call("GET", f"/duels/players/{b.id}/history", params={"limit": 1})
    assert history["next_offset"] == 1
    assert history["rows"][0]["my_role"] == "challenger"
    assert history["rows"][0]["opponent_name"] == "Alan T."

    detail = api.call("GET", f"/duels/{first['duel_id']}")
    assert (detail["challenger_name"], detail["accepter_name"]) == ("Alan T.", "Barbara L.")

    with pytest.raises(ApiError) as missing:
        api.call("GET", "/duels/does-not-exist")
    assert missing.value.status_code == 404

    with pytest.raises(ApiError) as self_duel:
        complete_duel(api, service_token, identity_factory, game_type="alps", challenger=(a.id, 1, 1), accepter=(a.id, 2, 2))
    assert self_duel.value.status_code == 422


@pytest.mark.regression
def test_regression_duel_survives_failing_notifier(api, db, service_token, identity_factory):
    a = create_player(db, identity_factory)
    b = create_player(db, identity_factory)
    seen = []

    def broken(event):
        raise RuntimeError("mail server down")

    notifications.register_duel_listener(broken)
    notifications.register_duel_listener(seen.append)
    try:
        out = complete_duel(api, service_token, identity_factory, game_type="alps", challenger=(a.id, 1, 1), accepter=(b.id, 2, 2))
    finally:
        notifications.unregister_duel_listener(broken)
        notifications.unregister_duel_listener(seen.append)

    assert out["winner_id"] == b.id
    assert [e.duel_id for e in seen] == [out["duel_id"]]
    assert seen[0].accepter_name == "Test P."
    assert api.call("GET", f"/duels/{out['duel_id']}")["winner_id"] == b.id


@pytest.mark.regression
def test_regression_repair_endpoint(api, db, service_token, identity_factory):
    a = create_player(db, identity_factory)
    b = create_player(db, identity_factory)
    record_game(api, service_token, identity_factory, game_type="alps", total_score=10, player_id=a.id)
    complete_duel(api, service_token, identity_factory, game_type="alps", challenger=(a.id, 1, 1), accepter=(b.id, 2, 2))

    out = api.call("POST", "/rankings/repair", token=service_token, params={"rebuild": "true"})
    assert out == {"ranking_partitions": 8, "duel_partitions": 1, "rebuilt_results": 1}
    assert api.call("GET", "/rankings/alps/alltime")["rows"][0]["rank"] == 1
