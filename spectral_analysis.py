"""
Spectral analysis of sample series.

Pipeline: DC-offset removal and amplitude scaling (bias model), then either
a single raw segment transform or a windowed, segmented, bin-averaged
transform.

Normalization always divides by the length of the whole series, including
when only a sub-segment is transformed afterwards. Spectra from different
captures are therefore only comparable at equal series length.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np
from scipy import fft as sp_fft

from analysis_errors import EmptySeriesError

log = logging.getLogger(__name__)

EPSILON_SMALL = 1e-20  # Stricter epsilon for power calculations
PARSEVAL_TOLERANCE = 1e-6

RAW_DFT_MAX_LENGTH = 10000
RAW_DFT_OFFSET_DIVISOR = 3
DEFAULT_WINDOW_SIZE = 512

WindowFunction = Callable[[int], np.ndarray]
Interpolator = Callable[[np.ndarray], np.ndarray]


# =============================================================================
# WINDOWS AND INTERPOLATION
# =============================================================================

def hann_window(size: int) -> np.ndarray:
    """Raised-cosine taper, 0.5 * (1 - cos(2*pi*n / (size - 1)))."""
    return np.hanning(size)


def rectangular_window(size: int) -> np.ndarray:
    return np.ones(size)


WINDOW_FUNCTIONS: Dict[str, WindowFunction] = {
    'hann': hann_window,
    'hamming': np.hamming,
    'blackman': np.blackman,
    'rectangular': rectangular_window,
}


def get_window(name: str) -> WindowFunction:
    """Look up a window function by name."""
    try:
        return WINDOW_FUNCTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown window type '{name}' "
                         f"(choose from {', '.join(sorted(WINDOW_FUNCTIONS))})") from None


def identity(samples: np.ndarray) -> np.ndarray:
    return samples


# =============================================================================
# BIAS MODEL
# =============================================================================

@dataclass(frozen=True)
class BiasDebiased:
    """Subtract the empirical mean of the whole series."""


@dataclass(frozen=True)
class BiasNominal:
    """Subtract the midpoint 2^(nBits-1) - 1 of an nBits unsigned range."""
    n_bits: int


Bias = Union[BiasDebiased, BiasNominal]


def dc_offset(bias: Bias, samples: np.ndarray) -> float:
    """DC offset to subtract from every sample under the given bias model."""
    if isinstance(bias, BiasNominal):
        return float(2 ** (bias.n_bits - 1) - 1)
    if isinstance(bias, BiasDebiased):
        if len(samples) == 0:
            raise EmptySeriesError("debiasing")
        return float(np.mean(samples))
    raise TypeError(f"Unsupported bias model: {bias!r}")


def normalize_samples(bias: Bias, samples) -> np.ndarray:
    """
    DC-null and scale a series: ``(sample - offset) / len(samples)``.

    Raises:
        EmptySeriesError: there is no length to scale by.
    """
    samples = np.asarray(samples)
    n_samples = len(samples)
    if n_samples == 0:
        raise EmptySeriesError("normalization")
    offset = dc_offset(bias, samples)
    log.debug(f"DC offset {offset:.6g} over {n_samples:,} samples")
    return (samples.astype(np.float64) - offset) / n_samples


# =============================================================================
# DFT MODES
# =============================================================================

@dataclass(frozen=True)
class RawDFT:
    """One unwindowed transform of a single segment taken a third of the way in."""
    max_length: int = RAW_DFT_MAX_LENGTH
    offset_divisor: int = RAW_DFT_OFFSET_DIVISOR


@dataclass(frozen=True)
class WindowedDFT:
    """Average of windowed transforms over consecutive non-overlapping segments."""
    window_size: int = DEFAULT_WINDOW_SIZE
    window: WindowFunction = hann_window
    interpolate: Interpolator = identity

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError(f"window_size must be positive, got {self.window_size}")


DFTMode = Union[RawDFT, WindowedDFT]


@dataclass(frozen=True)
class Spectrum:
    """Magnitude spectrum, index = frequency bin."""
    magnitudes: np.ndarray
    mode: str
    segment_count: int
    segment_length: int
    energy_error: Optional[float] = None  # Parseval mismatch, full-length raw spectra only

    def __len__(self) -> int:
        return len(self.magnitudes)

    @property
    def is_degenerate(self) -> bool:
        """True when no full segment was available to transform."""
        return self.segment_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'segment_count': self.segment_count,
            'segment_length': self.segment_length,
            'bins': len(self.magnitudes),
            'degenerate': self.is_degenerate,
            'energy_error': self.energy_error,
            'magnitudes': [float(m) for m in self.magnitudes],
        }


# =============================================================================
# SEGMENTATION, DFT ENGINE, AVERAGING
# =============================================================================

def raw_segment_bounds(n_samples: int, mode: RawDFT) -> Tuple[int, int]:
    """Start offset and length of the raw-mode segment."""
    length = min(mode.max_length, n_samples)
    start = (n_samples - length) // mode.offset_divisor
    return start, length


def split_segments(samples: np.ndarray, window_size: int) -> np.ndarray:
    """
    Split into consecutive full segments of ``window_size`` samples.

    A trailing partial segment is dropped. Returns a (segments, window_size)
    array, with zero rows when the series is shorter than one window.
    """
    n_segments = len(samples) // window_size
    return np.reshape(samples[:n_segments * window_size], (n_segments, window_size))


def magnitude_spectrum(samples: np.ndarray, one_sided: bool = False) -> np.ndarray:
    """
    Absolute value of the unnormalized DFT along the last axis.

    Full-length output (N bins) by default; ``one_sided`` gives the
    real-input half spectrum of N//2 + 1 bins.
    """
    if one_sided:
        return np.abs(sp_fft.rfft(samples, axis=-1))
    return np.abs(sp_fft.fft(samples, axis=-1))


def average_spectra(spectra: np.ndarray) -> np.ndarray:
    """Bin-wise arithmetic mean over a (segments, bins) array."""
    if len(spectra) == 0:
        return np.zeros(0, dtype=np.float64)
    return np.mean(spectra, axis=0)


def parseval_error(segment: np.ndarray, magnitudes: np.ndarray) -> float:
    """
    Relative mismatch between time-domain energy and (1/N) Σ|X[k]|².

    Only meaningful for a full-length, unwindowed spectrum of ``segment``.
    A series with no energy (all samples equal to the offset) reports 0.
    """
    n_samples = len(segment)
    if n_samples == 0:
        raise EmptySeriesError("energy check")
    time_energy = float(np.sum(np.square(segment)))
    freq_energy = float(np.sum(np.square(magnitudes))) / n_samples
    return abs(time_energy - freq_energy) / (time_energy + EPSILON_SMALL)


def _raw_spectrum(mode: RawDFT, normed: np.ndarray, one_sided: bool) -> Spectrum:
    start, length = raw_segment_bounds(len(normed), mode)
    segment = normed[start:start + length]
    magnitudes = magnitude_spectrum(segment, one_sided)
    energy_error = None
    if not one_sided:
        energy_error = parseval_error(segment, magnitudes)
        if energy_error > PARSEVAL_TOLERANCE:
            log.warning(f"Raw DFT energy mismatch {energy_error:.2e} exceeds {PARSEVAL_TOLERANCE:.0e}")
    return Spectrum(magnitudes=magnitudes, mode='raw', segment_count=1,
                    segment_length=length, energy_error=energy_error)


def _windowed_spectrum(mode: WindowedDFT, normed: np.ndarray, one_sided: bool) -> Spectrum:
    window = np.asarray(mode.window(mode.window_size), dtype=np.float64)
    if window.shape != (mode.window_size,):
        raise ValueError(f"Window function returned {window.shape[0] if window.ndim else 0} "
                         f"coefficients, expected {mode.window_size}")

    segments = split_segments(np.asarray(mode.interpolate(normed)), mode.window_size)
    if len(segments) == 0:
        log.debug(f"Series of {len(normed):,} samples is shorter than one "
                  f"{mode.window_size}-sample window; windowed spectrum is empty")
        return Spectrum(magnitudes=np.zeros(0, dtype=np.float64), mode='windowed',
                        segment_count=0, segment_length=mode.window_size)

    spectra = magnitude_spectrum(segments * window, one_sided)
    log.debug(f"Averaged {len(segments)} windowed segments of {mode.window_size} samples")
    return Spectrum(magnitudes=average_spectra(spectra), mode='windowed',
                    segment_count=len(segments), segment_length=mode.window_size)


def process_dft(bias: Bias, mode: DFTMode, samples, one_sided: bool = False) -> Spectrum:
    """
    Compute the magnitude spectrum of a sample series.

    Args:
        bias: DC offset model used for normalization.
        mode: RawDFT or WindowedDFT.
        samples: Integer sample series in acquisition order.
        one_sided: Return N//2 + 1 bins per transform instead of N.

    Returns:
        Spectrum. A windowed spectrum over a series shorter than one window
        is empty and reports ``is_degenerate``.
    """
    normed = normalize_samples(bias, samples)
    if isinstance(mode, RawDFT):
        return _raw_spectrum(mode, normed, one_sided)
    if isinstance(mode, WindowedDFT):
        return _windowed_spectrum(mode, normed, one_sided)
    raise TypeError(f"Unsupported DFT mode: {mode!r}")
