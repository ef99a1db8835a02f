# Copyright 2025 Sushanth (https://github.com/sushanthpy)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
VecDB Collection

A named set of documents, each an id paired with a vector, searched by
exact cosine similarity.

Example:
    collection = Collection("docs")
    collection.upsert("a", [1.0, 0.0, 0.0])
    doc_id = collection.insert([0.0, 1.0, 0.0])   # generated UUID4 id

    for result in collection.search([1.0, 0.0, 0.0], k=2):
        print(result.id, result.score)
"""

from __future__ import annotations

import logging
import operator
import time
import uuid
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

import numpy as np

from .errors import ValidationError
from .locks import ReadWriteLock
from .scoring import ScoringPool, SnapshotEntry, score_partition, select_top_k
from .similarity import VectorLike, as_vector, unit

logger = logging.getLogger(__name__)


# ============================================================================
# Search Results
# ============================================================================

@dataclass
class SearchResult:
    """A single search result."""

    id: Hashable
    score: float


@dataclass
class SearchResults:
    """Ranked search results with scoring statistics."""

    results: List[SearchResult] = field(default_factory=list)
    scored_count: int = 0
    skipped_count: int = 0
    query_time_ms: float = 0.0

    def __iter__(self) -> Iterator[SearchResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, idx: int) -> SearchResult:
        return self.results[idx]

    @property
    def ids(self) -> List[Hashable]:
        return [r.id for r in self.results]

    def to_pairs(self) -> List[Tuple[Hashable, float]]:
        """Results as (id, score) tuples, best first."""
        return [(r.id, r.score) for r in self.results]


def _validate_k(k: Any) -> int:
    try:
        k = operator.index(k)
    except TypeError:
        raise ValidationError(f"k must be an integer, got {type(k).__name__}") from None
    if k < 0:
        raise ValidationError(f"k must be non-negative, got {k}")
    return k


# ============================================================================
# Collection
# ============================================================================

class Collection:
    """
    A vector collection.

    Documents map an id (any hashable, unique within this collection) to a
    float vector. Vectors are not required to share a length; a document
    whose length differs from the query is skipped by search().

    Thread safety: reads (get, search, count) run concurrently; writes
    (upsert, delete) are exclusive. search() holds the read lock only while
    taking a snapshot, so scoring never blocks writers.
    """

    def __init__(self, name: str, pool: Optional[ScoringPool] = None):
        self._name = name
        self._pool = pool
        self._documents: Dict[Hashable, np.ndarray] = {}
        self._lock = ReadWriteLock()

    @property
    def name(self) -> str:
        """Collection name."""
        return self._name

    def info(self) -> Dict[str, Any]:
        """Collection name, size and scoring mode."""
        return {
            "name": self._name,
            "count": self.count(),
            "parallel": self._pool is not None and self._pool.config.parallel,
        }

    # ========================================================================
    # Write Operations
    # ========================================================================

    def upsert(self, id: Hashable, vector: VectorLike) -> Hashable:
        """
        Insert a document or replace the vector of an existing one.

        A replaced document keeps its original place in the insertion
        order, which is the tie-break for equal search scores.

        Args:
            id: Document ID, unique within this collection
            vector: Vector embedding

        Returns:
            The document ID

        Raises:
            ValidationError: If vector is not a non-empty 1-D numeric sequence
        """
        stored = as_vector(vector)
        with self._lock.write_locked():
            self._documents[id] = stored
        return id

    def insert(self, vector: VectorLike) -> uuid.UUID:
        """
        Insert a document under a freshly generated UUID4.

        Returns:
            The new document ID
        """
        doc_id = uuid.uuid4()
        self.upsert(doc_id, vector)
        return doc_id

    def upsert_many(self, items: Iterable[Tuple[Hashable, VectorLike]]) -> int:
        """
        Upsert several (id, vector) pairs at once.

        Every vector is validated before any is stored, so a bad entry
        leaves the collection unchanged.

        Returns:
            Number of pairs written

        Raises:
            ValidationError: If an item is not an (id, vector) pair or a
                vector is malformed
        """
        prepared = []
        for item in items:
            try:
                doc_id, vector = item
            except (TypeError, ValueError):
                raise ValidationError(f"Expected an (id, vector) pair, got {item!r}") from None
            prepared.append((doc_id, as_vector(vector)))
        with self._lock.write_locked():
            for doc_id, stored in prepared:
                self._documents[doc_id] = stored
        return len(prepared)

    def delete(self, id: Hashable) -> bool:
        """
        Delete a document.

        Returns:
            True if the document existed and was removed
        """
        with self._lock.write_locked():
            return self._documents.pop(id, None) is not None

    # ========================================================================
    # Read Operations
    # ========================================================================

    def get(self, id: Hashable) -> Optional[List[float]]:
        """Get a document's vector, or None if it does not exist."""
        with self._lock.read_locked():
            vector = self._documents.get(id)
        return None if vector is None else vector.tolist()

    def count(self) -> int:
        """Number of documents in the collection."""
        with self._lock.read_locked():
            return len(self._documents)

    def ids(self) -> List[Hashable]:
        """Document IDs in insertion order."""
        with self._lock.read_locked():
            return list(self._documents)

    def _snapshot(self) -> List[SnapshotEntry]:
        with self._lock.read_locked():
            return [
                (position, doc_id, vector)
                for position, (doc_id, vector) in enumerate(self._documents.items())
            ]

    def search(self, query_vector: VectorLike, k: int = 10) -> SearchResults:
        """
        Exact top-k search by cosine similarity.

        Scores every document against the query and returns the k best,
        highest score first. Equal scores are ordered by insertion order,
        so repeated queries on an unchanged collection return the same
        ranking whether scoring ran serially or on the worker pool.

        Documents are skipped (and counted in skipped_count) when their
        length differs from the query or they contain non-finite values.
        An all-zero query or document scores 0.0.

        Args:
            query_vector: Query vector
            k: Number of results (0 returns no results)

        Returns:
            SearchResults with at most k results

        Raises:
            ValidationError: If k is negative or the query is malformed
        """
        start_time = time.time()

        k = _validate_k(k)
        query = as_vector(query_vector)
        if not np.isfinite(query).all():
            raise ValidationError("Query vector contains non-finite values")

        if k == 0:
            return SearchResults()

        snapshot = self._snapshot()
        if not snapshot:
            return SearchResults()

        if self._pool is not None:
            partial = self._pool.score(query, snapshot)
        else:
            partial = score_partition(query, unit(query), snapshot)

        top = select_top_k(partial.scored, k)
        results = [SearchResult(id=doc_id, score=similarity) for _, doc_id, similarity in top]

        if partial.skipped:
            logger.debug(
                "Search on '%s' skipped %d of %d documents",
                self._name, partial.skipped, len(snapshot),
            )

        elapsed = (time.time() - start_time) * 1000
        return SearchResults(
            results=results,
            scored_count=len(partial.scored),
            skipped_count=partial.skipped,
            query_time_ms=elapsed,
        )

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, id: Hashable) -> bool:
        with self._lock.read_locked():
            return id in self._documents

    def __repr__(self) -> str:
        return f"Collection(name='{self._name}', count={self.count()})"


# ============================================================================
# Read-only View
# ============================================================================

class CollectionView:
    """
    Read-only handle on a Collection.

    Returned by Database.get(); exposes lookups and search but no writes.
    Use Database.get_mut() for a writable handle.
    """

    def __init__(self, collection: Collection):
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    def get(self, id: Hashable) -> Optional[List[float]]:
        return self._collection.get(id)

    def search(self, query_vector: VectorLike, k: int = 10) -> SearchResults:
        return self._collection.search(query_vector, k)

    def count(self) -> int:
        return self._collection.count()

    def ids(self) -> List[Hashable]:
        return self._collection.ids()

    def info(self) -> Dict[str, Any]:
        return self._collection.info()

    def __len__(self) -> int:
        return len(self._collection)

    def __contains__(self, id: Hashable) -> bool:
        return id in self._collection

    def __repr__(self) -> str:
        return f"CollectionView(name='{self.name}', count={self.count()})"
