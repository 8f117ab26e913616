"""
Histogram, entropy and summary statistics for sample series.
"""

import logging
from dataclasses import dataclass
from math import log2
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from analysis_errors import EmptySeriesError

log = logging.getLogger(__name__)

BITS_PER_BYTE = 8.0


@dataclass(frozen=True)
class FrequencyTable:
    """Dense value histogram: one count for every integer in [min, max]."""
    values: np.ndarray
    counts: np.ndarray

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self.items())

    def items(self) -> List[Tuple[int, int]]:
        return [(int(v), int(c)) for v, c in zip(self.values, self.counts)]

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def to_text(self) -> str:
        """One ``value count`` line per bin."""
        return ''.join(f"{v} {c}\n" for v, c in self.items())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min_value': int(self.values[0]),
            'max_value': int(self.values[-1]),
            'counts': [int(c) for c in self.counts],
        }


@dataclass(frozen=True)
class SampleStats:
    """Summary statistics of one sample view."""
    minimum: int
    maximum: int
    mean: float
    entropy: float
    n_bits: int
    sample_count: int

    def to_text(self) -> str:
        return "min: %d  max: %d  mean: %0.3g  byte-entropy: %0.3g\n" % (
            self.minimum, self.maximum, self.mean, self.entropy)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min': self.minimum,
            'max': self.maximum,
            'mean': self.mean,
            'entropy': self.entropy,
            'n_bits': self.n_bits,
            'sample_count': self.sample_count,
        }


def _require_samples(samples, operation: str) -> np.ndarray:
    samples = np.asarray(samples, dtype=np.int64)
    if samples.size == 0:
        raise EmptySeriesError(operation)
    return samples


def build_histogram(samples) -> FrequencyTable:
    """
    Count every value in the inclusive range [min(samples), max(samples)].

    Unobserved values in range get an explicit zero count. Output is
    ordered ascending by value.
    """
    samples = _require_samples(samples, "histogram")
    smallest = int(samples.min())
    largest = int(samples.max())
    counts = np.bincount(samples - smallest, minlength=largest - smallest + 1)
    values = np.arange(smallest, largest + 1, dtype=np.int64)
    log.debug(f"Histogram: {len(values)} bins over [{smallest}, {largest}]")
    return FrequencyTable(values=values, counts=counts.astype(np.int64))


def shannon_entropy(counts) -> float:
    """
    Shannon entropy in bits of a count vector.

    Zero-count bins contribute nothing. An all-zero vector has no
    distribution and raises EmptySeriesError.
    """
    counts = np.asarray(counts, dtype=np.float64)
    weight = counts.sum()
    if weight <= 0:
        raise EmptySeriesError("entropy")

    entropy = 0.0
    for count in counts:
        if count > 0:
            p = count / weight
            entropy -= p * log2(p)
    return entropy


def entropy_adjustment(n_bits: int) -> float:
    """Scale factor taking an nBits-alphabet entropy to bits per byte."""
    if n_bits < 1:
        raise ValueError(f"n_bits must be positive, got {n_bits}")
    return max(1.0, BITS_PER_BYTE / n_bits)


def compute_stats(samples, n_bits: int, table: Optional[FrequencyTable] = None) -> SampleStats:
    """Minimum, maximum, mean and bit-normalized entropy of a series."""
    samples = _require_samples(samples, "stats")
    if table is None:
        table = build_histogram(samples)
    entropy = entropy_adjustment(n_bits) * shannon_entropy(table.counts)
    return SampleStats(
        minimum=int(samples.min()),
        maximum=int(samples.max()),
        mean=float(np.mean(samples)),
        entropy=float(entropy),
        n_bits=n_bits,
        sample_count=len(samples),
    )
