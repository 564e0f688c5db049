from __future__ import annotations

import threading

import pytest

from chessrules.engine.game import Game
from chessrules.engine.move import str_to_square as sq
from chessrules.protocol.http.session import InMemorySessionStore


def test_create_get_replace_delete() -> None:
    store = InMemorySessionStore()
    gid = store.create()
    session = store.get(gid)
    assert session is not None
    assert len(store) == 1

    fresh = Game.from_fen("4k3/8/8/8/8/8/8/4K3 w - - 0 1")
    store.replace(gid, fresh)
    assert store.get(gid) is session
    assert session.game is fresh

    store.delete(gid)
    assert store.get(gid) is None
    assert len(store) == 0
    with pytest.raises(KeyError):
        store.replace(gid, fresh)


def test_concurrent_creates_yield_unique_ids() -> None:
    store = InMemorySessionStore()
    ids: list[str] = []
    ids_lock = threading.Lock()

    def worker() -> None:
        for _ in range(25):
            gid = store.create()
            with ids_lock:
                ids.append(gid)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(ids) == 200
    assert len(set(ids)) == 200
    assert len(store) == 200


def test_readers_under_session_lock_never_see_probe_state() -> None:
    store = InMemorySessionStore()
    gid = store.create()
    session = store.get(gid)
    assert session is not None
    seen: list[int] = []
    errors: list[str] = []

    def reader() -> None:
        for _ in range(20):
            with session.lock:
                n = len(session.game.legal_moves())
                fen = session.game.to_fen()
            seen.append(n)
            placement = fen.split()[0]
            if placement.count("K") != 1 or placement.count("k") != 1:
                errors.append(fen)

    def writer() -> None:
        for origin, dest in [("e2", "e4"), ("e7", "e5"), ("g1", "f3"), ("b8", "c6")]:
            with session.lock:
                if not session.game.attempt_move(sq(origin), sq(dest)).accepted:
                    errors.append(origin + dest)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    threads.append(threading.Thread(target=writer))
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    assert all(n > 0 for n in seen)
    with session.lock:
        assert session.game.move_history_uci() == ["e2e4", "e7e5", "g1f3", "b8c6"]
