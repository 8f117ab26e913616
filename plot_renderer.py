"""
PDF charts for analyzed sample views.
"""

import logging
import warnings
from pathlib import Path
from typing import List, Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from analysis_pipeline import AnalysisConfig, AnalysisResult
from report_writer import analysis_file
from spectral_analysis import Spectrum

# Suppress matplotlib font warnings
warnings.filterwarnings('ignore', category=UserWarning, module='matplotlib')

log = logging.getLogger(__name__)


class PlotRenderer:
    """Renders time series, histogram and spectrum charts."""

    def __init__(self, config: AnalysisConfig):
        self.config = config
        self._setup_plotting()
        config.output_dir.mkdir(parents=True, exist_ok=True)

    def _setup_plotting(self):
        """Configure matplotlib styling."""
        if self.config.dark_theme:
            self.style = 'dark_background'
            self.colors = {
                'points': '#888888',
                'trace': '#00ff88',
                'bars': '#4ecdc4',
                'edge': '#ffffff',
                'grid': '#333333',
            }
        else:
            self.style = 'default'
            self.colors = {
                'points': 'gray',
                'trace': 'black',
                'bars': 'gray',
                'edge': 'black',
                'grid': '#cccccc',
            }

    def _path(self, what: str, suffix: str) -> Path:
        return analysis_file(self.config.output_dir, what, suffix, "pdf")

    def plot_time_series(self, result: AnalysisResult) -> Path:
        """All samples as points, plus a short zoomed trace from a third of the way in."""
        samples = result.samples
        n_samples = len(samples)
        zoom = samples[n_samples // 3:n_samples // 3 + self.config.zoom_length]
        # Zoomed x positions are spread over the full axis
        zoom_x = np.arange(len(zoom)) * (n_samples // 100)

        with plt.style.context(self.style):
            fig, ax = plt.subplots(figsize=(10, 6))
            ax.scatter(np.arange(1, n_samples + 1), samples, s=0.5,
                       color=self.colors['points'], label='all')
            ax.plot(zoom_x, zoom, color=self.colors['trace'], linewidth=0.8, label='zoomed')
            ax.set_xlabel('sample')
            ax.set_ylabel('value')
            ax.set_title(f'{result.label}: time series ({n_samples:,} samples)')
            ax.legend(loc='upper right')
            return self._save_figure(fig, self._path(result.label, "ts"))

    def plot_histogram(self, result: AnalysisResult) -> Path:
        """Bars over the whole nBits-wide value range."""
        n_bins = 2 ** result.n_bits
        values = result.histogram.values
        counts = result.histogram.counts

        with plt.style.context(self.style):
            fig, ax = plt.subplots(figsize=(10, 6))
            ax.bar(values, counts, width=1.0, align='edge',
                   color=self.colors['bars'], edgecolor=self.colors['edge'], linewidth=0.05)
            ax.set_xlim(0, max(n_bins, int(values[-1]) + 1))
            ax.set_xlabel('value')
            ax.set_ylabel('frequency')
            ax.set_title(f'{result.label}: histogram ({result.n_bits} bits, '
                         f'entropy {result.stats.entropy:.3g})')
            ax.grid(True, alpha=0.3, color=self.colors['grid'])
            return self._save_figure(fig, self._path(result.label, "hist"))

    def plot_spectrum(self, label: str, spectrum: Spectrum, suffix: str) -> Optional[Path]:
        """Bin index against amplitude. Degenerate spectra are skipped."""
        if spectrum.is_degenerate:
            log.warning(f"Skipping {label}-{suffix}: spectrum is empty")
            return None

        bins = np.arange(len(spectrum))
        with plt.style.context(self.style):
            fig, ax = plt.subplots(figsize=(10, 6))
            ax.bar(bins, spectrum.magnitudes, width=0.3, color=self.colors['trace'])
            ax.set_xlabel('frequency')
            ax.set_ylabel('amplitude')
            if spectrum.mode == 'windowed':
                detail = f'{spectrum.segment_count} x {spectrum.segment_length}-sample segments'
            else:
                detail = f'{spectrum.segment_length}-sample segment'
            ax.set_title(f'{label}: {spectrum.mode} DFT ({detail})')
            ax.grid(True, alpha=0.3, color=self.colors['grid'])
            return self._save_figure(fig, self._path(label, suffix))

    def render_all(self, result: AnalysisResult) -> List[Path]:
        saved = [
            self.plot_time_series(result),
            self.plot_histogram(result),
            self.plot_spectrum(result.label, result.raw_spectrum, "dft"),
            self.plot_spectrum(result.label, result.windowed_spectrum, "wdft"),
        ]
        return [p for p in saved if p is not None]

    def _save_figure(self, fig: plt.Figure, filepath: Path) -> Path:
        """Save figure with proper settings."""
        try:
            fig.savefig(filepath, dpi=self.config.plot_dpi, bbox_inches='tight')
            log.info(f"Saved: {filepath.name}")
        finally:
            plt.close(fig)
        return filepath
