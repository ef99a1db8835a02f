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
VecDB - In-Process Vector Store

Named collections of (id, vector) documents with exact top-k search by
cosine similarity:

1. **Database** - owns collections and routes operations by name
2. **Collection** - upsert/delete/get and brute-force ranked search
3. **ScoringPool** - partitions scoring across a fixed worker pool
"""

from .errors import (
    VecDBError,
    ValidationError,
    DimensionMismatchError,
    CollectionNotFoundError,
)

from .config import (
    SearchConfig,
    PerformanceWarning,
)

from .similarity import (
    as_vector,
    cosine_similarity,
    dot,
    magnitude,
)

from .scoring import ScoringPool

from .collection import (
    Collection,
    CollectionView,
    SearchResult,
    SearchResults,
)

from .database import Database

__version__ = "0.1.0"

__all__ = [
    # Errors
    "VecDBError",
    "ValidationError",
    "DimensionMismatchError",
    "CollectionNotFoundError",
    # Configuration
    "SearchConfig",
    "PerformanceWarning",
    # Similarity
    "as_vector",
    "cosine_similarity",
    "dot",
    "magnitude",
    # Core
    "ScoringPool",
    "Collection",
    "CollectionView",
    "SearchResult",
    "SearchResults",
    "Database",
]
