"""Concurrent lifecycle calls for the same user and day."""

import threading

import pytest

import lifecycle
from app import create_app
from errors import AlreadyClockedIn
from models import db, Entry, User
from tests.conftest import TEST_CONFIG

DAY = "2026-03-10"
WORKERS = 8


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        **TEST_CONFIG,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"check_same_thread": False, "timeout": 30}},
    })
    with app.app_context():
        user = User(username="racer")
        db.session.add(user)
        db.session.commit()
        app.config["RACER_ID"] = user.id
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _run_concurrently(app, action):
    barrier = threading.Barrier(WORKERS)
    outcomes = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                result = action(app.config["RACER_ID"])
            except AlreadyClockedIn as e:
                result = e
            finally:
                db.session.remove()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(WORKERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


def test_concurrent_clock_ins_open_the_day_once(file_app):
    outcomes = _run_concurrently(file_app, lambda uid: lifecycle.clock_in(uid, DAY, "09:00"))

    assert sum(isinstance(o, dict) for o in outcomes) == 1
    assert sum(isinstance(o, AlreadyClockedIn) for o in outcomes) == WORKERS - 1
    with file_app.app_context():
        assert Entry.query.count() == 1


def test_concurrent_toggles_never_double_open(file_app):
    outcomes = _run_concurrently(file_app, lambda uid: lifecycle.toggle(uid, DAY, "09:00"))

    actions = [o["action"] for o in outcomes]
    assert actions.count("check-in") == WORKERS // 2
    assert actions.count("check-out") == WORKERS // 2
    with file_app.app_context():
        open_entries = Entry.query.filter(Entry.check_in.isnot(None), Entry.check_out.is_(None)).count()
        assert open_entries == 0
        assert Entry.query.count() == WORKERS // 2
