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
Partitioned brute-force scoring.

A search takes an immutable snapshot of a collection, a list of
(position, id, vector) entries, and scores every entry against the query.
Large snapshots are split into contiguous partitions and scored on a
fixed-size thread pool; partial results are merged in partition order and
the top-k is selected on the calling thread.

Key invariants:
- Every entry is scored by similarity.score(), on either path
- Top-k ordering is (score descending, position ascending), never
  completion order, so parallel and serial searches agree exactly
- A faulty entry (dimension mismatch, non-finite score) is skipped and
  counted; it never aborts the rest of the search
"""

import heapq
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Sequence, Tuple

import numpy as np

from .config import SearchConfig
from .errors import DimensionMismatchError
from .similarity import score, unit

logger = logging.getLogger(__name__)

# (position, id, vector)
SnapshotEntry = Tuple[int, Hashable, np.ndarray]
# (position, id, score)
ScoredEntry = Tuple[int, Hashable, float]


@dataclass
class PartitionResult:
    """Scores for one partition plus the number of entries skipped."""

    scored: List[ScoredEntry] = field(default_factory=list)
    skipped: int = 0

    def merge(self, other: "PartitionResult") -> None:
        self.scored.extend(other.scored)
        self.skipped += other.skipped


def score_partition(
    query: np.ndarray,
    query_unit: Optional[np.ndarray],
    entries: Sequence[SnapshotEntry],
) -> PartitionResult:
    """Score a contiguous slice of a snapshot (runs on a worker thread)."""
    result = PartitionResult()
    for position, doc_id, vector in entries:
        try:
            similarity = score(query, query_unit, vector)
        except DimensionMismatchError as e:
            logger.debug("Skipping document %r: %s", doc_id, e)
            result.skipped += 1
            continue
        if math.isnan(similarity):
            logger.debug("Skipping document %r: non-finite vector components", doc_id)
            result.skipped += 1
            continue
        result.scored.append((position, doc_id, similarity))
    return result


def _rank_key(entry: ScoredEntry) -> Tuple[float, int]:
    return (-entry[2], entry[0])


def select_top_k(scored: Sequence[ScoredEntry], k: int) -> List[ScoredEntry]:
    """Highest scores first; equal scores in insertion order."""
    if k <= 0:
        return []
    if k >= len(scored):
        return sorted(scored, key=_rank_key)
    return heapq.nsmallest(k, scored, key=_rank_key)


class ScoringPool:
    """
    Fixed-size worker pool shared by the collections of one database.

    The underlying ThreadPoolExecutor is created on first parallel search
    and shut down by close(). After close(), searches still work but are
    scored on the calling thread.
    """

    def __init__(self, config: Optional[SearchConfig] = None):
        self._config = config or SearchConfig()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def config(self) -> SearchConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def should_parallelize(self, size: int) -> bool:
        """Whether a snapshot of this many entries is worth fanning out."""
        return (
            not self._closed
            and self._config.parallel
            and size >= self._config.parallel_threshold
            and size > self._config.chunk_size
        )

    def _get_executor(self) -> Optional[ThreadPoolExecutor]:
        with self._lock:
            if self._closed:
                return None
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._config.max_workers,
                    thread_name_prefix="vecdb-score",
                )
            return self._executor

    def score(self, query: np.ndarray, snapshot: Sequence[SnapshotEntry]) -> PartitionResult:
        """
        Score every snapshot entry against the query.

        Args:
            query: Validated query vector
            snapshot: (position, id, vector) entries

        Returns:
            Merged PartitionResult, scored entries in snapshot order
        """
        query_unit = unit(query)

        executor = self._get_executor() if self.should_parallelize(len(snapshot)) else None
        if executor is None:
            return score_partition(query, query_unit, snapshot)

        chunk_size = self._config.chunk_size
        partitions = [
            snapshot[start:start + chunk_size]
            for start in range(0, len(snapshot), chunk_size)
        ]
        logger.debug(
            "Scoring %d documents in %d partitions", len(snapshot), len(partitions)
        )

        try:
            futures = [
                executor.submit(score_partition, query, query_unit, partition)
                for partition in partitions
            ]
        except RuntimeError:
            # Pool was closed between the check and the submit
            logger.debug("Scoring pool shut down mid-search, scoring serially")
            return score_partition(query, query_unit, snapshot)

        merged = PartitionResult()
        for future in futures:
            merged.merge(future.result())
        return merged

    def close(self) -> None:
        """Shut down the worker threads (idempotent)."""
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "ScoringPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ScoringPool(max_workers={self._config.max_workers}, {state})"
