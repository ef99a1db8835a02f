"""
Database routing: collection lifecycle, read-only vs writable handles,
search delegation and not-found behaviour.
"""

import logging

import pytest

from vecdb import (
    Collection,
    CollectionNotFoundError,
    CollectionView,
    Database,
    SearchConfig,
    ValidationError,
    VecDBError,
)


@pytest.fixture
def db():
    database = Database(SearchConfig(max_workers=2, parallel_threshold=4, chunk_size=2))
    yield database
    database.close()


# ---------------------------------------------------------------------------
# 1. Collection lifecycle
# ---------------------------------------------------------------------------

def test_new_database_is_empty(db):
    assert len(db) == 0
    assert db.list_collections() == []


def test_add_creates_empty_collection(db):
    created = db.add("docs")
    assert isinstance(created, Collection)
    assert created.name == "docs"
    assert len(created) == 0
    assert "docs" in db
    assert db.get_mut("docs") is created


def test_add_existing_name_replaces(db, caplog):
    db.add("docs").upsert("a", [1.0, 0.0])

    with caplog.at_level(logging.WARNING, logger="vecdb.database"):
        replacement = db.add("docs")

    assert len(replacement) == 0, "re-adding a name must start from an empty collection"
    assert db.get_mut("docs") is replacement
    assert len(db) == 1
    assert "replaced" in caplog.text


@pytest.mark.parametrize("bad", ["", None, 3])
def test_add_rejects_bad_names(db, bad):
    with pytest.raises(ValidationError):
        db.add(bad)


def test_collections_are_independent(db):
    db.add("ICC")
    db.add("IA")
    db.get_mut("ICC").upsert("shared-id", [1.0, 0.0])
    db.get_mut("IA").upsert("shared-id", [0.0, 1.0])

    assert db.get("ICC").get("shared-id") == [1.0, 0.0]
    assert db.get("IA").get("shared-id") == [0.0, 1.0]


def test_drop(db):
    db.add("docs")
    assert db.drop("docs") is True
    assert "docs" not in db
    assert db.get("docs") is None
    assert db.drop("docs") is False


def test_list_collections_sorted(db):
    for name in ["zeta", "alpha", "mid"]:
        db.add(name)
    assert db.list_collections() == ["alpha", "mid", "zeta"]
    assert repr(db) == "Database(collections=['alpha', 'mid', 'zeta'])"


# ---------------------------------------------------------------------------
# 2. Handles
# ---------------------------------------------------------------------------

def test_get_returns_read_only_view(db):
    db.add("docs").upsert("a", [1.0, 0.0])
    view = db.get("docs")

    assert isinstance(view, CollectionView)
    assert view.name == "docs"
    assert view.get("a") == [1.0, 0.0]
    assert view.count() == 1
    assert len(view) == 1
    assert "a" in view
    assert view.ids() == ["a"]
    assert view.info()["name"] == "docs"
    assert view.search([1.0, 0.0], 1).ids == ["a"]
    assert not hasattr(view, "upsert")
    assert not hasattr(view, "delete")


def test_unknown_collection_is_absent(db):
    assert db.get("missing") is None
    assert db.get_mut("missing") is None
    assert db.search("missing", [1.0], 3) is None


def test_strict_accessor_raises(db):
    with pytest.raises(CollectionNotFoundError) as excinfo:
        db.collection("missing")
    assert str(excinfo.value) == "Collection 'missing' not found"
    assert isinstance(excinfo.value, VecDBError)
    assert isinstance(excinfo.value, KeyError)

    db.add("docs")
    assert db.collection("docs") is db.get_mut("docs")


def test_search_never_creates_collection(db):
    db.search("ghost", [1.0], 1)
    assert "ghost" not in db


# ---------------------------------------------------------------------------
# 3. Search routing
# ---------------------------------------------------------------------------

def test_search_delegates_to_collection(db):
    db.add("docs")
    docs = db.get_mut("docs")
    first = docs.insert([1, 0, 0])
    docs.insert([0, 1, 0])
    third = docs.insert([1, 1, 0])

    results = db.search("docs", [1, 0, 0], 2)

    assert results.ids == [first, third]
    assert results[0].score == pytest.approx(1.0)
    assert results[1].score == pytest.approx(0.7071, abs=1e-4)


def test_search_empty_and_k_zero(db):
    db.add("docs")
    assert len(db.search("docs", [1.0, 0.0], 5)) == 0
    db.get_mut("docs").upsert("a", [1.0, 0.0])
    assert len(db.search("docs", [1.0, 0.0], 0)) == 0


def test_search_still_works_after_close():
    db = Database(SearchConfig(max_workers=4, parallel_threshold=0, chunk_size=1))
    db.add("docs")
    for i in range(10):
        db.get_mut("docs").upsert(i, [float(i), 1.0])
    before = db.search("docs", [1.0, 1.0], 10).to_pairs()
    db.close()
    after = db.search("docs", [1.0, 1.0], 10).to_pairs()
    assert before == after


def test_context_manager_closes_pool():
    with Database(SearchConfig(max_workers=2)) as db:
        db.add("docs")
    assert db._pool.closed


def test_default_config_reads_environment(monkeypatch):
    monkeypatch.setenv("VECDB_SEARCH_WORKERS", "3")
    monkeypatch.setenv("VECDB_CHUNK_SIZE", "16")
    monkeypatch.delenv("VECDB_FORCE_SERIAL", raising=False)
    with Database() as db:
        assert db.config.max_workers == 3
        assert db.config.chunk_size == 16
