# Rev 0.2.0
from __future__ import annotations

import random
from datetime import datetime, timedelta

import pytest

from projectz.models.entities import Project, ProjectOrdering
from projectz.models.random_projects import NAME_POOL
from projectz.repositories.errors import PersistenceError

STATIC_DATE = datetime(2020, 1, 1, 0, 0, 0)


def make_project(name: str = "Build a house", due: datetime = STATIC_DATE, priority: int = 1) -> Project:
    return Project(id=None, name=name, due_date=due, priority=priority)


# --- save --------------------------------------------------------------------

def test_insert_assigns_id_and_round_trips(repo):
    project = make_project(priority=1000)
    saved = repo.save_project(project)

    assert saved.id is not None
    assert project.id is None  # caller's value untouched
    assert repo.get_project(saved.id) == saved
    assert repo.fetch_one() == saved


def test_insert_then_update_keeps_identity(repo):
    saved = repo.save_project(make_project("Build a house", STATIC_DATE, 1000))
    assert saved.id == 1
    assert repo.fetch_one() == Project(1, "Build a house", STATIC_DATE, 1000)

    updated = Project(saved.id, "Write a book", STATIC_DATE + timedelta(days=1), 500)
    assert repo.save_project(updated) == updated
    assert repo.fetch_one() == Project(1, "Write a book", datetime(2020, 1, 2, 0, 0, 0), 500)
    assert repo.count_projects() == 1


def test_repeated_saves_do_not_add_rows(repo):
    saved = repo.save_project(make_project())
    repo.save_project(make_project("other"))
    for prio in range(5):
        repo.save_project(Project(saved.id, saved.name, saved.due_date, prio))
    assert repo.count_projects() == 2
    assert repo.get_project(saved.id).priority == 4


def test_saving_a_deleted_project_restores_its_row(repo):
    saved = repo.save_project(make_project())
    repo.delete_all_projects()

    repo.save_project(saved)
    assert repo.get_project(saved.id) == saved
    assert repo.count_projects() == 1


def test_empty_name_and_out_of_range_priority_are_stored(repo):
    saved = repo.save_project(make_project(name="", priority=-7))
    fetched = repo.get_project(saved.id)
    assert fetched.name == ""
    assert fetched.display_name == "Anonymous"
    assert fetched.priority == -7


def test_microseconds_survive(repo):
    due = datetime(2021, 6, 5, 4, 3, 2, 123456)
    saved = repo.save_project(make_project(due=due))
    assert repo.get_project(saved.id).due_date == due


def test_save_failure_is_reported(repo, db):
    db.close()
    with pytest.raises(PersistenceError):
        repo.save_project(make_project())


# --- delete ------------------------------------------------------------------

def test_delete_all(repo):
    for i in range(3):
        repo.save_project(make_project(f"p{i}"))
    assert repo.delete_all_projects() == 3
    assert repo.count_projects() == 0
    assert repo.delete_all_projects() == 0


def test_delete_by_id_removes_exactly_those_rows(repo):
    a = repo.save_project(make_project("a"))
    b = repo.save_project(make_project("b"))
    c = repo.save_project(make_project("c"))

    assert repo.delete_projects([b.id]) == 1
    assert repo.get_project(b.id) is None
    assert {p.id for p in repo.list_projects()} == {a.id, c.id}


def test_delete_unknown_id_is_a_noop(repo):
    a = repo.save_project(make_project("a"))
    assert repo.delete_projects([a.id + 100]) == 0
    assert repo.count_projects() == 1


def test_delete_with_no_ids_does_not_notify(repo):
    seen: list[str] = []
    repo.observe(seen.append)
    assert repo.delete_projects([]) == 0
    assert seen == []


def test_delete_many_ids(repo):
    ids = [repo.save_project(make_project(f"p{i}")).id for i in range(1200)]
    assert repo.delete_projects(ids[:1100] + [999_999]) == 1100
    assert repo.count_projects() == 100


# --- seeding -----------------------------------------------------------------

def test_seed_if_empty_inserts_batch_with_one_notification(repo):
    seen: list[str] = []
    repo.observe(seen.append)

    assert repo.seed_if_empty(5, rng=random.Random(7)) == 5
    assert repo.count_projects() == 5
    assert seen == ["project"]

    for p in repo.list_projects():
        assert p.name in NAME_POOL
        assert 1 <= p.priority <= 5


def test_seed_if_empty_leaves_existing_data_alone(repo):
    repo.save_project(make_project())
    assert repo.seed_if_empty(5) == 0
    assert repo.count_projects() == 1


# --- reads -------------------------------------------------------------------

@pytest.fixture()
def three(repo):
    return [
        repo.save_project(make_project("banana", STATIC_DATE + timedelta(days=2), 3)),
        repo.save_project(make_project("Apple", STATIC_DATE, 5)),
        repo.save_project(make_project("cherry", STATIC_DATE + timedelta(days=9), 1)),
    ]


def test_order_by_name_is_case_insensitive(repo, three):
    assert [p.name for p in repo.list_projects(ProjectOrdering.BY_NAME)] == ["Apple", "banana", "cherry"]


def test_order_by_due_date_is_latest_first(repo, three):
    assert [p.name for p in repo.list_projects(ProjectOrdering.BY_DUE_DATE)] == ["cherry", "banana", "Apple"]


def test_order_by_priority_is_highest_first(repo, three):
    assert [p.priority for p in repo.list_projects(ProjectOrdering.BY_PRIORITY)] == [5, 3, 1]


def test_priority_ties_keep_insertion_order(repo):
    first = repo.save_project(make_project("z", priority=2))
    second = repo.save_project(make_project("a", priority=2))
    assert [p.id for p in repo.list_projects(ProjectOrdering.BY_PRIORITY)] == [first.id, second.id]


def test_read_gives_raw_access(repo, three):
    names = repo.read(lambda con: [r["name"] for r in con.execute("SELECT name FROM project ORDER BY id")])
    assert names == ["banana", "Apple", "cherry"]
