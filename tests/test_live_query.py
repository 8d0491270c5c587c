# Rev 0.2.0
from __future__ import annotations

import threading
from datetime import datetime

import pytest

from projectz.models.entities import Project, ProjectOrdering
from projectz.repositories.live_query import LiveQuery, SubscriptionState


def new_project(name: str = "Build a house", priority: int = 1) -> Project:
    return Project(id=None, name=name, due_date=datetime(2020, 1, 1), priority=priority)


def by_priority(repo):
    return repo.list_projects(ProjectOrdering.BY_PRIORITY)


# --- inline (synchronous) delivery ------------------------------------------

def test_empty_table_then_one_then_two(repo):
    received: list[list[Project]] = []
    query = LiveQuery(repo, by_priority, received.append).start()

    assert received == [[]]
    first = repo.save_project(new_project("first", 1))
    assert received[-1] == [first]
    second = repo.save_project(new_project("second", 3))
    assert received[-1] == [second, first]
    assert query.state is SubscriptionState.ACTIVE


def test_start_twice_or_after_cancel_raises(repo):
    query = LiveQuery(repo, by_priority, lambda _: None).start()
    with pytest.raises(RuntimeError):
        query.start()
    query.cancel()
    with pytest.raises(RuntimeError):
        query.start()


def test_cancel_stops_deliveries_and_unsubscribes(repo):
    calls: list[int] = []

    def fetch(r):
        calls.append(1)
        return r.count_projects()

    received: list[int] = []
    query = LiveQuery(repo, fetch, received.append).start()
    query.cancel()
    query.cancel()
    repo.save_project(new_project())

    assert received == [0]
    assert len(calls) == 1
    assert query.state is SubscriptionState.CANCELLED
    assert not query.is_active


def test_read_error_goes_to_handler_and_subscription_survives(repo):
    failures: list[Exception] = []
    received: list[int] = []
    fail_next = {"on": True}

    def fetch(r):
        if fail_next["on"]:
            fail_next["on"] = False
            raise OSError("disk I/O error")
        return r.count_projects()

    query = LiveQuery(repo, fetch, received.append, failures.append).start()
    assert len(failures) == 1 and isinstance(failures[0], OSError)
    assert received == []

    repo.save_project(new_project())
    assert received == [1]
    assert query.is_active


def test_failing_subscriber_does_not_end_subscription(repo):
    received: list[int] = []

    def on_change(count: int) -> None:
        received.append(count)
        if count == 1:
            raise ValueError("subscriber bug")

    LiveQuery(repo, lambda r: r.count_projects(), on_change).start()
    repo.save_project(new_project("a"))
    repo.save_project(new_project("b"))
    assert received == [0, 1, 2]


def test_write_from_subscriber_is_coalesced_not_recursive(repo):
    received: list[int] = []

    def on_change(count: int) -> None:
        received.append(count)
        if count < 3:
            repo.save_project(new_project(f"p{count}"))

    LiveQuery(repo, lambda r: r.count_projects(), on_change).start()
    assert received == [0, 1, 2, 3]


# --- threaded delivery -------------------------------------------------------

def test_threaded_delivery_reaches_final_state(repo, executor, wait_until):
    received: list[list[Project]] = []
    LiveQuery(repo, by_priority, received.append, executor=executor).start()
    assert wait_until(lambda: received == [[]])

    for i in range(10):
        repo.save_project(new_project(f"p{i}", i))

    assert wait_until(lambda: received and len(received[-1]) == 10)
    assert [p.priority for p in received[-1]] == list(range(9, -1, -1))


def test_burst_during_reread_coalesces_into_one_more_read(repo, executor, wait_until):
    gate = threading.Event()
    calls: list[int] = []
    received: list[int] = []

    def fetch(r):
        calls.append(1)
        if len(calls) == 1:
            gate.wait(5)
        return r.count_projects()

    LiveQuery(repo, fetch, received.append, executor=executor).start()
    assert wait_until(lambda: len(calls) == 1)

    for i in range(5):
        repo.save_project(new_project(f"p{i}"))
    gate.set()

    assert wait_until(lambda: received and received[-1] == 5)
    executor.shutdown(wait=True)
    assert len(calls) == 2


def test_cancel_mid_flight_discards_result(repo, executor, wait_until):
    gate = threading.Event()
    started = threading.Event()
    received: list[int] = []

    def fetch(r):
        started.set()
        gate.wait(5)
        return r.count_projects()

    query = LiveQuery(repo, fetch, received.append, executor=executor).start()
    assert started.wait(5)
    query.cancel()
    gate.set()
    executor.shutdown(wait=True)

    assert received == []


def test_switching_queries_never_delivers_the_old_ordering(repo, executor, wait_until):
    repo.save_project(new_project("b", 1))
    repo.save_project(new_project("a", 2))

    gate = threading.Event()
    started = threading.Event()
    deliveries: list[tuple[str, list[str]]] = []

    def slow_by_priority(r):
        started.set()
        gate.wait(5)
        return [p.name for p in r.list_projects(ProjectOrdering.BY_PRIORITY)]

    old = LiveQuery(repo, slow_by_priority, lambda names: deliveries.append(("priority", names)), executor=executor).start()
    assert started.wait(5)

    old.cancel()
    LiveQuery(
        repo,
        lambda r: [p.name for p in r.list_projects(ProjectOrdering.BY_NAME)],
        lambda names: deliveries.append(("name", names)),
        executor=executor,
    ).start()
    gate.set()
    repo.save_project(new_project("c", 9))

    assert wait_until(lambda: deliveries and deliveries[-1] == ("name", ["a", "b", "c"]))
    assert all(kind == "name" for kind, _ in deliveries)
