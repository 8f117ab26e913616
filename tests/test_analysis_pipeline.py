"""
Tests for the analysis orchestrator and its configuration.
"""

import json

import numpy as np
import pytest

from analysis_errors import EmptySeriesError
from analysis_pipeline import AnalysisConfig, analyze_samples
from sample_loader import decode_samples
from spectral_analysis import BiasDebiased, BiasNominal, hann_window


class TestAnalysisConfig:
    """Configuration defaults and validation."""

    def test_reference_configuration(self):
        config = AnalysisConfig()
        mode = config.windowed_mode()
        assert mode.window_size == 512
        assert mode.window is hann_window
        assert config.raw_mode().max_length == 10000
        assert config.raw_mode().offset_divisor == 3
        assert config.bias_model(12) == BiasDebiased()

    def test_nominal_bias_uses_view_width(self):
        assert AnalysisConfig(bias='nominal').bias_model(8) == BiasNominal(8)

    @pytest.mark.parametrize("kwargs", [
        {'window_size': 0},
        {'window_type': 'triangle'},
        {'bias': 'midpoint'},
        {'raw_dft_max_length': 0},
        {'raw_dft_offset_divisor': 0},
        {'jobs': 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            AnalysisConfig(**kwargs)


class TestAnalyzeSamples:
    """End-to-end analysis of one view."""

    def test_two_zero_samples(self):
        result = analyze_samples('raw', 12, decode_samples(bytes([0, 0, 0, 0])))
        assert result.stats.minimum == 0
        assert result.stats.maximum == 0
        assert result.stats.mean == 0.0
        assert result.stats.entropy == 0.0
        assert result.histogram.items() == [(0, 2)]
        assert len(result.raw_spectrum) == 2
        assert result.windowed_spectrum.is_degenerate

    def test_full_outputs(self):
        samples = np.random.default_rng(11).integers(0, 4096, size=3000)
        result = analyze_samples('prng', 12, samples)
        assert result.label == 'prng'
        assert result.histogram.total == 3000
        assert len(result.raw_spectrum) == 3000
        assert len(result.windowed_spectrum) == 512
        assert result.windowed_spectrum.segment_count == 5
        # Uniform 12-bit data: entropy close to the 12-bit maximum
        assert 10.0 < result.stats.entropy <= 12.0

    def test_narrow_view_entropy_is_scaled(self):
        samples = np.tile(np.arange(4), 256)
        result = analyze_samples('twobit', 2, samples)
        assert result.stats.entropy == pytest.approx(8.0)

    def test_deterministic(self):
        samples = np.random.default_rng(12).integers(0, 4096, size=2048)
        first = analyze_samples('raw', 12, samples)
        second = analyze_samples('raw', 12, samples.copy())
        assert first.stats == second.stats
        assert first.histogram.items() == second.histogram.items()
        assert np.array_equal(first.raw_spectrum.magnitudes, second.raw_spectrum.magnitudes)
        assert np.array_equal(first.windowed_spectrum.magnitudes,
                              second.windowed_spectrum.magnitudes)

    def test_serializable(self):
        result = analyze_samples('low', 8, np.arange(600) % 256)
        encoded = json.loads(json.dumps(result.to_dict()))
        assert encoded['stats']['n_bits'] == 8
        assert encoded['windowed_spectrum']['bins'] == 512

    def test_empty_series(self):
        with pytest.raises(EmptySeriesError):
            analyze_samples('raw', 12, [])

    def test_invalid_bit_width(self):
        with pytest.raises(ValueError):
            analyze_samples('raw', 0, [1, 2, 3])
