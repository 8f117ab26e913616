"""
Sample loading for hardware RNG captures.

The generator emits 16-bit little-endian words: for each byte pair the first
byte is the low byte and the second is the high byte. A capture with an odd
number of bytes is rejected outright, no partial series is returned.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union, BinaryIO

import numpy as np
import psutil

from analysis_errors import DecodeError

log = logging.getLogger(__name__)

SAMPLE_DTYPE = np.dtype('<u2')  # little-endian unsigned 16-bit
MEMORY_USAGE_WARNING = 0.8  # Warn if capture exceeds this fraction of available RAM

RAW_BITS = 12
BYTE_BITS = 8
TWO_BITS = 2


@dataclass(frozen=True)
class SampleView:
    """A named bit-extraction of the decoded series."""
    name: str
    n_bits: int
    samples: np.ndarray

    def __len__(self) -> int:
        return len(self.samples)


def decode_samples(raw: Union[bytes, bytearray, memoryview]) -> np.ndarray:
    """
    Decode a byte sequence into integer samples, two bytes per sample.

    Args:
        raw: Byte stream in acquisition order.

    Returns:
        int64 array, one entry per byte pair, value ``(b[k+1] << 8) | b[k]``.

    Raises:
        DecodeError: if the byte count is odd.
    """
    num_bytes = len(raw)
    if num_bytes % SAMPLE_DTYPE.itemsize != 0:
        raise DecodeError(num_bytes)
    # Widen so downstream arithmetic (means, offsets) never wraps
    return np.frombuffer(raw, dtype=SAMPLE_DTYPE).astype(np.int64)


def _truncate(samples: np.ndarray, max_samples: Optional[int]) -> np.ndarray:
    """Keep at most the first ``max_samples`` samples. None keeps everything."""
    if max_samples is None:
        return samples
    if max_samples < 1:
        raise ValueError(f"max_samples must be positive, got {max_samples}")
    return samples[:max_samples]


class SampleLoader:
    """Reads captures from disk or a stream and decodes them."""

    @classmethod
    def load(cls, filepath: Path, max_samples: Optional[int] = None) -> np.ndarray:
        """Load and decode a capture file."""
        if not filepath.is_file():
            raise FileNotFoundError(f"File not found: {filepath}")

        file_size = filepath.stat().st_size
        available_mem = psutil.virtual_memory().available
        if file_size > available_mem * MEMORY_USAGE_WARNING:
            log.warning(f"File size ({file_size/1e9:.1f}GB) may exceed available memory "
                        f"({available_mem/1e9:.1f}GB)")

        samples = _truncate(decode_samples(filepath.read_bytes()), max_samples)

        log.info(f"Loaded {len(samples):,} samples from {filepath.name} "
                 f"({file_size / 1e6:.2f} MB)")
        return samples

    @classmethod
    def load_stream(cls, stream: Optional[BinaryIO] = None,
                    max_samples: Optional[int] = None) -> np.ndarray:
        """Load and decode everything readable from a binary stream (stdin by default)."""
        if stream is None:
            stream = sys.stdin.buffer
        raw = stream.read()
        samples = _truncate(decode_samples(raw), max_samples)
        log.info(f"Loaded {len(samples):,} samples from stream ({len(raw):,} bytes)")
        return samples


def extract_views(samples: np.ndarray) -> List[SampleView]:
    """
    Derive the standard bit-extraction views of a decoded series.

    raw keeps the 12-bit ADC word, low and mid take 8-bit slices at bit
    offsets 0 and 1, twobit keeps the two least significant bits.
    """
    samples = np.asarray(samples, dtype=np.int64)
    return [
        SampleView('raw', RAW_BITS, samples),
        SampleView('low', BYTE_BITS, samples & 0xff),
        SampleView('mid', BYTE_BITS, (samples >> 1) & 0xff),
        SampleView('twobit', TWO_BITS, samples & 0x03),
    ]
