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
VecDB Errors

All exceptions raised by the package derive from VecDBError, so callers can
catch the whole family with a single except clause:

    try:
        results = db.collection("docs").search(query, k=5)
    except VecDBError as e:
        ...

Lookups of unknown collections or documents are NOT errors on the regular
API: they return None (or False for delete). Only the strict accessor
Database.collection() raises CollectionNotFoundError.
"""


class VecDBError(Exception):
    """Base class for all VecDB errors."""
    pass


class ValidationError(VecDBError, ValueError):
    """Invalid input: malformed vector, negative k, bad name or config value."""
    pass


class DimensionMismatchError(VecDBError):
    """Two vectors compared for similarity have different lengths."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Vector dimension mismatch: expected {expected}, got {actual}"
        )


class CollectionNotFoundError(VecDBError, KeyError):
    """The named collection does not exist in the database."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Collection '{name}' not found")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]
