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
Cosine similarity primitives.

    dot(a, b)       = sum(a[i] * b[i])
    magnitude(v)    = sqrt(sum(v[i] ** 2))
    cos(a, b)       = dot(a, b) / (magnitude(a) * magnitude(b))

Scoring works on unit vectors obtained by dividing by the largest component
first, so finite vectors of any scale score correctly. A zero vector has no
direction; its similarity to anything is 0.0.
"""

import math
from typing import Optional, Sequence, Union

import numpy as np

from .errors import DimensionMismatchError, ValidationError

VectorLike = Union[Sequence[float], np.ndarray]


def as_vector(values: VectorLike) -> np.ndarray:
    """
    Convert input to a read-only 1-D float64 array.

    The returned array never aliases caller memory, so later mutation of
    the input cannot change a stored vector. Components must be ints or
    floats; strings, bools and other objects are rejected even when numpy
    could coerce them.

    Raises:
        ValidationError: If values is not a non-empty 1-D numeric sequence
    """
    try:
        source = np.asarray(values)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Vector must be a sequence of numbers: {e}") from None

    if source.dtype.kind not in "iuf":
        raise ValidationError(f"Vector components must be numbers, got dtype {source.dtype}")
    if source.ndim != 1:
        raise ValidationError(f"Vector must be one-dimensional, got shape {source.shape}")
    if source.size == 0:
        raise ValidationError("Vector must not be empty")

    vector = np.array(source, dtype=np.float64)
    vector.flags.writeable = False
    return vector


def dot(a: np.ndarray, b: np.ndarray) -> float:
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0])
    return float(np.dot(a, b))


def magnitude(v: np.ndarray) -> float:
    """Euclidean length, scaled by the largest component so squares stay in range."""
    scale = float(np.max(np.abs(v)))
    if scale == 0.0 or not math.isfinite(scale):
        return scale
    scaled = v / scale
    return scale * math.sqrt(float(np.dot(scaled, scaled)))


def unit(v: np.ndarray) -> Optional[np.ndarray]:
    """
    v scaled to length 1, or None if every component is zero.

    Dividing by the largest component first keeps the squared sum between
    1 and len(v), so neither huge nor tiny finite vectors collapse to 0 or
    inf. Non-finite components propagate as NaN.
    """
    scale = float(np.max(np.abs(v)))
    if scale == 0.0:
        return None
    scaled = v / scale
    return scaled / math.sqrt(float(np.dot(scaled, scaled)))


def score(query: np.ndarray, query_unit: Optional[np.ndarray], vector: np.ndarray) -> float:
    """
    Cosine similarity with the query's unit vector precomputed.

    This is the single scoring routine used by both serial and parallel
    search, so a document scores identically on either path.

    Args:
        query: Query vector
        query_unit: unit(query)
        vector: Document vector

    Returns:
        Similarity in [-1, 1]; 0.0 if either vector is all zeros; NaN if
        either vector holds non-finite components.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if query.shape[0] != vector.shape[0]:
        raise DimensionMismatchError(query.shape[0], vector.shape[0])
    if not (np.isfinite(query).all() and np.isfinite(vector).all()):
        return math.nan

    vector_unit = unit(vector)
    if query_unit is None or vector_unit is None:
        return 0.0
    similarity = float(np.dot(query_unit, vector_unit))
    # Rounding can push parallel vectors a hair past 1.0
    return max(-1.0, min(1.0, similarity))


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1], or 0.0 if either vector is all zeros

    Raises:
        ValidationError: If either input is not a finite numeric vector
        DimensionMismatchError: If the vectors differ in length
    """
    a = as_vector(a)
    b = as_vector(b)
    for name, v in (("a", a), ("b", b)):
        if not np.isfinite(v).all():
            raise ValidationError(f"Vector {name} contains non-finite values")
    return score(a, unit(a), b)
