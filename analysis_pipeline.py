"""
Analysis orchestration for one labelled sample view.

Produces summary statistics, the dense histogram, a raw-segment spectrum and
a windowed/averaged spectrum. Reporting and plotting consume AnalysisResult
and never reach into the individual stages.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from sample_stats import FrequencyTable, SampleStats, build_histogram, compute_stats
from spectral_analysis import (
    Bias, BiasDebiased, BiasNominal, RawDFT, Spectrum, WindowedDFT,
    DEFAULT_WINDOW_SIZE, RAW_DFT_MAX_LENGTH, RAW_DFT_OFFSET_DIVISOR,
    get_window, process_dft,
)

log = logging.getLogger(__name__)

BIAS_MODES = ('debiased', 'nominal')


@dataclass
class AnalysisConfig:
    """Configuration for sample analysis and its outputs."""
    window_size: int = DEFAULT_WINDOW_SIZE
    window_type: str = 'hann'
    raw_dft_max_length: int = RAW_DFT_MAX_LENGTH
    raw_dft_offset_divisor: int = RAW_DFT_OFFSET_DIVISOR
    bias: str = 'debiased'
    one_sided: bool = False
    output_dir: Path = field(default_factory=lambda: Path("./analysis"))
    plot_dpi: int = 150
    dark_theme: bool = False
    render_plots: bool = True
    zoom_length: int = 100
    include_prng: bool = True
    prng_seed: Optional[int] = None
    jobs: int = 1

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if self.raw_dft_max_length < 1:
            raise ValueError(f"raw_dft_max_length must be positive, got {self.raw_dft_max_length}")
        if self.raw_dft_offset_divisor < 1:
            raise ValueError(f"raw_dft_offset_divisor must be positive, "
                             f"got {self.raw_dft_offset_divisor}")
        if self.bias not in BIAS_MODES:
            raise ValueError(f"Unknown bias mode '{self.bias}' (choose from {', '.join(BIAS_MODES)})")
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")
        # Fail on an unknown window at construction rather than mid-run
        get_window(self.window_type)

    def bias_model(self, n_bits: int) -> Bias:
        if self.bias == 'nominal':
            return BiasNominal(n_bits)
        return BiasDebiased()

    def raw_mode(self) -> RawDFT:
        return RawDFT(max_length=self.raw_dft_max_length,
                      offset_divisor=self.raw_dft_offset_divisor)

    def windowed_mode(self) -> WindowedDFT:
        return WindowedDFT(window_size=self.window_size,
                           window=get_window(self.window_type))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'window_size': self.window_size,
            'window_type': self.window_type,
            'raw_dft_max_length': self.raw_dft_max_length,
            'raw_dft_offset_divisor': self.raw_dft_offset_divisor,
            'bias': self.bias,
            'one_sided': self.one_sided,
        }


@dataclass
class AnalysisResult:
    """Everything derived from one sample view."""
    label: str
    n_bits: int
    samples: np.ndarray
    stats: SampleStats
    histogram: FrequencyTable
    raw_spectrum: Spectrum
    windowed_spectrum: Spectrum

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'n_bits': self.n_bits,
            'stats': self.stats.to_dict(),
            'histogram': self.histogram.to_dict(),
            'raw_spectrum': self.raw_spectrum.to_dict(),
            'windowed_spectrum': self.windowed_spectrum.to_dict(),
        }


def analyze_samples(label: str, n_bits: int, samples,
                    config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """
    Run the full analysis for one sample view.

    Args:
        label: View name used in logs and output file names.
        n_bits: Intended bit width of the view (drives entropy scaling and
            the nominal bias midpoint).
        samples: Integer sample series in acquisition order.
        config: Analysis configuration (reference configuration if None).

    Raises:
        EmptySeriesError: the series has no samples.
        ValueError: n_bits is not positive.
    """
    if config is None:
        config = AnalysisConfig()
    samples = np.asarray(samples, dtype=np.int64)
    log.info(f"Analyzing {label}: {len(samples):,} samples, {n_bits} bits")

    histogram = build_histogram(samples)
    stats = compute_stats(samples, n_bits, table=histogram)

    bias = config.bias_model(n_bits)
    raw_spectrum = process_dft(bias, config.raw_mode(), samples, config.one_sided)
    windowed_spectrum = process_dft(bias, config.windowed_mode(), samples, config.one_sided)
    if windowed_spectrum.is_degenerate:
        log.warning(f"{label}: no full {config.window_size}-sample segment, "
                    f"windowed spectrum unavailable")

    return AnalysisResult(
        label=label,
        n_bits=n_bits,
        samples=samples,
        stats=stats,
        histogram=histogram,
        raw_spectrum=raw_spectrum,
        windowed_spectrum=windowed_spectrum,
    )
