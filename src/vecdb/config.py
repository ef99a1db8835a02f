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
VecDB Search Configuration

Tuning knobs for the parallel scoring phase of a search. Values come from
the constructor or from environment variables:

    VECDB_SEARCH_WORKERS       worker threads in the scoring pool
    VECDB_PARALLEL_THRESHOLD   minimum collection size before scoring fans out
    VECDB_CHUNK_SIZE           documents per partition handed to one worker
    VECDB_FORCE_SERIAL         "1"/"true" disables parallel scoring entirely
"""

import os
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import ValidationError


# =============================================================================
# Serial-mode hygiene
# =============================================================================

class PerformanceWarning(UserWarning):
    """Warning for performance-degrading conditions."""
    pass


_FORCE_SERIAL_WARNED = False


def _check_force_serial(environ: Mapping[str, str]) -> bool:
    """Check if serial scoring is forced and emit a one-time warning."""
    global _FORCE_SERIAL_WARNED

    if environ.get("VECDB_FORCE_SERIAL") in ("1", "true", "True"):
        if not _FORCE_SERIAL_WARNED:
            warnings.warn(
                "VECDB_FORCE_SERIAL is enabled: searches on large collections "
                "will score every document on the calling thread. Unset this "
                "environment variable for production use.",
                PerformanceWarning,
                stacklevel=3,
            )
            _FORCE_SERIAL_WARNED = True
        return True
    return False


def _default_workers() -> int:
    # Same default as concurrent.futures.ThreadPoolExecutor
    return min(32, (os.cpu_count() or 1) + 4)


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from None


# =============================================================================
# Search Configuration
# =============================================================================

@dataclass
class SearchConfig:
    """
    Configuration for search scoring.

    Example:
        # Defaults: parallel scoring for collections of 1024+ documents
        config = SearchConfig()

        # Small pool, fan out earlier
        config = SearchConfig(max_workers=2, parallel_threshold=128, chunk_size=64)

        # Serial only
        config = SearchConfig(max_workers=1)
    """

    max_workers: int = field(default_factory=_default_workers)
    parallel_threshold: int = 1024
    chunk_size: int = 256

    def __post_init__(self):
        if self.max_workers <= 0:
            raise ValidationError(f"max_workers must be positive, got {self.max_workers}")
        if self.parallel_threshold < 0:
            raise ValidationError(
                f"parallel_threshold must be non-negative, got {self.parallel_threshold}"
            )
        if self.chunk_size <= 0:
            raise ValidationError(f"chunk_size must be positive, got {self.chunk_size}")

    @property
    def parallel(self) -> bool:
        """Whether scoring may use more than one worker."""
        return self.max_workers > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_workers": self.max_workers,
            "parallel_threshold": self.parallel_threshold,
            "chunk_size": self.chunk_size,
        }

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SearchConfig":
        """
        Build a config from VECDB_* environment variables.

        Unset variables fall back to the dataclass defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ValidationError: If a variable is not an integer or out of range
        """
        if environ is None:
            environ = os.environ

        kwargs: Dict[str, Any] = {}
        workers = _env_int(environ, "VECDB_SEARCH_WORKERS")
        if workers is not None:
            kwargs["max_workers"] = workers
        threshold = _env_int(environ, "VECDB_PARALLEL_THRESHOLD")
        if threshold is not None:
            kwargs["parallel_threshold"] = threshold
        chunk_size = _env_int(environ, "VECDB_CHUNK_SIZE")
        if chunk_size is not None:
            kwargs["chunk_size"] = chunk_size

        if _check_force_serial(environ):
            kwargs["max_workers"] = 1

        return cls(**kwargs)
