"""
Tests for the command line driver.
"""

import io
import sys

import numpy as np

from analysis_pipeline import AnalysisConfig
from analyze_hwrng import analyze_views, collect_views, main, prng_control_series


def write_capture(path, n_samples=1200, seed=31):
    samples = np.random.default_rng(seed).integers(0, 4096, size=n_samples)
    path.write_bytes(samples.astype('<u2').tobytes())
    return samples


class TestPrngControl:
    """Pseudo-random comparison series."""

    def test_range_and_length(self):
        series = prng_control_series(10000, 12, seed=1)
        assert len(series) == 10000
        assert series.min() >= 0
        assert series.max() <= 4095

    def test_seeded(self):
        assert np.array_equal(prng_control_series(50, seed=2), prng_control_series(50, seed=2))


class TestViews:
    """View fan-out."""

    def test_collect_views_with_prng(self):
        views = collect_views(np.arange(10), AnalysisConfig(prng_seed=0))
        assert [v.name for v in views] == ['raw', 'low', 'mid', 'twobit', 'prng']
        assert views[-1].n_bits == 12
        assert len(views[-1]) == 10

    def test_collect_views_without_prng(self):
        views = collect_views(np.arange(10), AnalysisConfig(include_prng=False))
        assert [v.name for v in views] == ['raw', 'low', 'mid', 'twobit']

    def test_parallel_matches_sequential(self):
        views = collect_views(np.arange(2000) % 4096, AnalysisConfig(include_prng=False))
        sequential = analyze_views(views, AnalysisConfig(jobs=1))
        parallel = analyze_views(views, AnalysisConfig(jobs=3))
        assert [r.label for r in parallel] == [r.label for r in sequential]
        for a, b in zip(sequential, parallel):
            assert a.stats == b.stats
            assert np.array_equal(a.windowed_spectrum.magnitudes, b.windowed_spectrum.magnitudes)


class TestMain:
    """End-to-end runs."""

    def test_reports_without_plots(self, tmp_path):
        capture = tmp_path / "capture.bin"
        write_capture(capture)
        out = tmp_path / "analysis"
        assert main([str(capture), '-o', str(out), '--no-plots', '--seed', '1']) == 0
        for view in ('raw', 'low', 'mid', 'twobit', 'prng'):
            assert (out / f"{view}-stats.txt").exists()
            assert (out / f"{view}-hist.txt").exists()
            assert (out / f"{view}-metrics.json").exists()
        assert not list(out.glob("*.pdf"))

    def test_with_plots(self, tmp_path):
        capture = tmp_path / "capture.bin"
        write_capture(capture, n_samples=600)
        out = tmp_path / "analysis"
        assert main([str(capture), '-o', str(out), '--no-prng', '-j', '2']) == 0
        assert (out / "raw-ts.pdf").exists()
        assert (out / "twobit-wdft.pdf").exists()

    def test_two_zero_samples(self, tmp_path):
        capture = tmp_path / "zeros.bin"
        capture.write_bytes(bytes([0, 0, 0, 0]))
        out = tmp_path / "analysis"
        assert main([str(capture), '-o', str(out), '--no-plots', '--no-prng']) == 0
        assert (out / "raw-stats.txt").read_text() == \
            "min: 0  max: 0  mean: 0  byte-entropy: 0\n"
        assert (out / "raw-hist.txt").read_text() == "0 2\n"

    def test_stdin(self, tmp_path, monkeypatch):
        data = np.arange(700, dtype='<u2').tobytes()
        monkeypatch.setattr(sys, 'stdin', io.TextIOWrapper(io.BytesIO(data)))
        out = tmp_path / "analysis"
        assert main(['-', '-o', str(out), '--no-plots', '--no-prng']) == 0
        assert (out / "raw-hist.txt").exists()

    def test_odd_capture_fails(self, tmp_path):
        capture = tmp_path / "odd.bin"
        capture.write_bytes(bytes([1, 2, 3]))
        out = tmp_path / "analysis"
        assert main([str(capture), '-o', str(out), '--no-plots']) == 1
        assert not out.exists()

    def test_empty_capture_fails(self, tmp_path):
        capture = tmp_path / "empty.bin"
        capture.write_bytes(b"")
        assert main([str(capture), '-o', str(tmp_path / "analysis"), '--no-plots']) == 1

    def test_missing_capture_fails(self, tmp_path):
        assert main([str(tmp_path / "missing.bin"), '--no-plots']) == 1

    def test_invalid_window_size(self, tmp_path):
        capture = tmp_path / "capture.bin"
        write_capture(capture)
        assert main([str(capture), '--window-size', '0', '--no-plots']) == 1

    def test_negative_max_samples_fails(self, tmp_path):
        capture = tmp_path / "capture.bin"
        write_capture(capture)
        output = tmp_path / "analysis"
        assert main([str(capture), '-o', str(output), '--max-samples', '-3', '--no-plots']) == 1
        assert not (output / 'raw-stats.txt').exists()
