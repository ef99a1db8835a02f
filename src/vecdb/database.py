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
VecDB Database

Owns a set of named collections and routes operations to them by name.

Example:
    with Database() as db:
        db.add("docs")
        docs = db.get_mut("docs")
        docs.upsert("a", [1.0, 0.0, 0.0])

        results = db.search("docs", [1.0, 0.0, 0.0], k=5)
        if results is None:
            ...  # no such collection

A Database is a plain object: create one where the application starts (or
per test) and pass it to whatever needs it.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from .collection import Collection, CollectionView, SearchResults
from .config import SearchConfig
from .errors import CollectionNotFoundError, ValidationError
from .scoring import ScoringPool
from .similarity import VectorLike

logger = logging.getLogger(__name__)


class Database:
    """
    In-memory vector database made of independent named collections.

    Collections are only created by add(); search() and get_mut() never
    create one implicitly. All collections share one scoring pool, sized
    by the SearchConfig.
    """

    def __init__(self, config: Optional[SearchConfig] = None):
        self._config = config or SearchConfig.from_env()
        self._pool = ScoringPool(self._config)
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.RLock()

    @property
    def config(self) -> SearchConfig:
        """Search configuration shared by all collections."""
        return self._config

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Stop the scoring workers. Collections remain readable."""
        self._pool.close()

    # ========================================================================
    # Collection Operations
    # ========================================================================

    def add(self, name: str) -> Collection:
        """
        Create an empty collection.

        If a collection with this name already exists it is replaced by a
        new, empty one and its documents are discarded.

        Args:
            name: Collection name

        Returns:
            The new collection

        Raises:
            ValidationError: If name is not a non-empty string
        """
        if not isinstance(name, str) or not name:
            raise ValidationError(f"Collection name must be a non-empty string, got {name!r}")

        collection = Collection(name, pool=self._pool)
        with self._lock:
            replaced = self._collections.get(name)
            self._collections[name] = collection

        if replaced is not None:
            logger.warning(
                "Collection '%s' replaced; %d documents discarded", name, len(replaced)
            )
        else:
            logger.info("Collection '%s' created", name)
        return collection

    def get(self, name: str) -> Optional[CollectionView]:
        """Read-only handle on a collection, or None if it does not exist."""
        with self._lock:
            collection = self._collections.get(name)
        return None if collection is None else CollectionView(collection)

    def get_mut(self, name: str) -> Optional[Collection]:
        """Writable handle on a collection, or None if it does not exist."""
        with self._lock:
            return self._collections.get(name)

    def collection(self, name: str) -> Collection:
        """
        Writable handle on an existing collection.

        Raises:
            CollectionNotFoundError: If the collection doesn't exist
        """
        collection = self.get_mut(name)
        if collection is None:
            raise CollectionNotFoundError(name)
        return collection

    def drop(self, name: str) -> bool:
        """
        Remove a collection and all its documents.

        Returns:
            True if the collection existed
        """
        with self._lock:
            removed = self._collections.pop(name, None)
        if removed is None:
            return False
        logger.info("Collection '%s' dropped", name)
        return True

    def list_collections(self) -> List[str]:
        """Names of all collections, sorted."""
        with self._lock:
            return sorted(self._collections)

    # ========================================================================
    # Search
    # ========================================================================

    def search(
        self,
        name: str,
        query_vector: VectorLike,
        k: int = 10,
    ) -> Optional[SearchResults]:
        """
        Top-k cosine search in the named collection.

        Args:
            name: Collection name
            query_vector: Query vector
            k: Number of results

        Returns:
            SearchResults, or None if the collection does not exist

        Raises:
            ValidationError: If k is negative or the query is malformed
        """
        collection = self.get_mut(name)
        if collection is None:
            return None
        return collection.search(query_vector, k)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._collections

    def __len__(self) -> int:
        with self._lock:
            return len(self._collections)

    def __repr__(self) -> str:
        return f"Database(collections={self.list_collections()})"
