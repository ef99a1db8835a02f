"""
Thread safety: reader/writer lock semantics and searches racing with
writes on a shared collection.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
import pytest

from vecdb import Database, SearchConfig
from vecdb.locks import ReadWriteLock


# ---------------------------------------------------------------------------
# ReadWriteLock
# ---------------------------------------------------------------------------

def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)

    def reader():
        with lock.read_locked():
            # all three readers must be inside at once to pass the barrier
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert not inside.broken


def test_writer_waits_for_reader():
    lock = ReadWriteLock()
    acquired = threading.Event()

    def writer():
        with lock.write_locked():
            acquired.set()

    lock.acquire_read()
    t = threading.Thread(target=writer)
    t.start()
    assert not acquired.wait(0.1), "writer must not enter while a reader holds the lock"
    lock.release_read()
    assert acquired.wait(5)
    t.join(timeout=5)


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    writer_done = threading.Event()
    late_reader_in = threading.Event()

    def writer():
        with lock.write_locked():
            writer_done.set()

    def late_reader():
        with lock.read_locked():
            late_reader_in.set()

    lock.acquire_read()
    w = threading.Thread(target=writer)
    w.start()
    # let the writer register as waiting
    while lock._writers_waiting == 0:
        threading.Event().wait(0.001)

    r = threading.Thread(target=late_reader)
    r.start()
    assert not late_reader_in.wait(0.1)

    lock.release_read()
    assert writer_done.wait(5)
    assert late_reader_in.wait(5)
    w.join(timeout=5)
    r.join(timeout=5)


# ---------------------------------------------------------------------------
# Searches racing with writes
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    database = Database(SearchConfig(max_workers=4, parallel_threshold=0, chunk_size=16))
    database.add("docs")
    yield database
    database.close()


def test_concurrent_search_and_upsert(db):
    docs = db.get_mut("docs")
    rng = np.random.default_rng(0)
    for i in range(200):
        docs.upsert(i, rng.normal(size=8))

    def writer(offset):
        local = np.random.default_rng(offset)
        for i in range(200):
            docs.upsert(offset * 1000 + i, local.normal(size=8))
            if i % 3 == 0:
                docs.delete(offset * 1000 + i - 1)
        return "written"

    def reader(seed):
        local = np.random.default_rng(seed)
        for _ in range(30):
            results = db.search("docs", local.normal(size=8), 10)
            scores = [r.score for r in results]
            assert len(results) == 10
            assert scores == sorted(scores, reverse=True)
            assert results.skipped_count == 0
        return "read"

    with ThreadPoolExecutor(max_workers=6) as executor:
        futures = [executor.submit(writer, n) for n in (1, 2)]
        futures += [executor.submit(reader, n) for n in range(10, 14)]
        outcomes = [f.result() for f in as_completed(futures)]

    assert outcomes.count("written") == 2
    assert outcomes.count("read") == 4


def test_concurrent_searches_agree(db):
    docs = db.get_mut("docs")
    rng = np.random.default_rng(4)
    for i in range(500):
        docs.upsert(i, rng.normal(size=16))
    query = rng.normal(size=16)
    expected = docs.search(query, 25).to_pairs()

    with ThreadPoolExecutor(max_workers=8) as executor:
        runs = list(executor.map(lambda _: docs.search(query, 25).to_pairs(), range(16)))

    assert all(run == expected for run in runs)


def test_collections_do_not_contend(db):
    db.add("other")
    docs = db.get_mut("docs")
    other = db.get_mut("other")
    docs._lock.acquire_write()
    try:
        other.upsert("a", [1.0, 0.0])
        assert db.search("other", [1.0, 0.0], 1).ids == ["a"]
    finally:
        docs._lock.release_write()
