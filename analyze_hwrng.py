#!/usr/bin/env python3
"""
Hardware RNG Sample Analysis

Reads a capture of 16-bit little-endian samples from a hardware random
number source and characterizes it for bias, periodicity and entropy.

For each bit-extraction view (raw 12-bit, low byte, mid byte, two low bits)
and a pseudo-random control series it writes:
- <view>-stats.txt   min / max / mean / byte-normalized entropy
- <view>-hist.txt    dense value histogram
- <view>-metrics.json  full results with capture hashes
- <view>-ts.pdf, <view>-hist.pdf, <view>-dft.pdf, <view>-wdft.pdf
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

import numpy as np

from analysis_errors import AnalysisError, EmptySeriesError
from analysis_pipeline import AnalysisConfig, AnalysisResult, analyze_samples
from plot_renderer import PlotRenderer
from report_writer import ReportWriter, describe_source
from sample_loader import RAW_BITS, SampleLoader, SampleView, extract_views
from spectral_analysis import WINDOW_FUNCTIONS

log = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False):
    """Attach a stdout handler to the root logger."""
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.INFO
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    for handler in root.handlers:
        handler.setLevel(level)


def prng_control_series(length: int, n_bits: int = RAW_BITS,
                        seed: Optional[int] = None) -> np.ndarray:
    """Uniform integers in [0, 2^n_bits - 1] to compare the capture against."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 2 ** n_bits, size=length, dtype=np.int64)


def collect_views(samples: np.ndarray, config: AnalysisConfig) -> List[SampleView]:
    views = extract_views(samples)
    if config.include_prng:
        views.append(SampleView('prng', RAW_BITS,
                                prng_control_series(len(samples), RAW_BITS, config.prng_seed)))
    return views


def analyze_views(views: List[SampleView], config: AnalysisConfig) -> List[AnalysisResult]:
    """Analyze every view, in parallel when ``config.jobs`` > 1. Order is preserved."""
    if config.jobs > 1 and len(views) > 1:
        with ThreadPoolExecutor(max_workers=config.jobs) as executor:
            futures = [
                executor.submit(analyze_samples, view.name, view.n_bits, view.samples, config)
                for view in views
            ]
            return [future.result() for future in futures]
    return [analyze_samples(view.name, view.n_bits, view.samples, config) for view in views]


def print_summary(result: AnalysisResult):
    """Print formatted summary of one view."""
    stats = result.stats
    print(f"\n{'='*60}")
    print(f" Sample Analysis Summary: {result.label}")
    print(f"{'='*60}")
    print(f" Samples:            {stats.sample_count:,}")
    print(f" Bit Width:          {result.n_bits}")
    print(f" Min / Max:          {stats.minimum} / {stats.maximum}")
    print(f" Mean:               {stats.mean:.3f}")
    print(f" Byte Entropy:       {stats.entropy:.3f} bits")
    print(f" Histogram Bins:     {len(result.histogram)}")
    print(f" Raw DFT Bins:       {len(result.raw_spectrum)}")
    if result.windowed_spectrum.is_degenerate:
        print(f" Windowed DFT:       unavailable (fewer than "
              f"{result.windowed_spectrum.segment_length} samples)")
    else:
        print(f" Windowed DFT:       {result.windowed_spectrum.segment_count} segments x "
              f"{result.windowed_spectrum.segment_length} bins")
    print(f"{'='*60}\n")


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Hardware RNG Sample Analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s capture.bin
  %(prog)s < capture.bin
  %(prog)s -o results --window-size 1024 --window blackman capture.bin
  %(prog)s --bias nominal --no-prng --no-plots capture.bin
  %(prog)s -j 4 --seed 1 capture.bin               # Parallel views, reproducible control
        '''
    )

    parser.add_argument('file', nargs='?', type=Path, default=None,
                        help='Sample capture file (default: read stdin; "-" also reads stdin)')

    parser.add_argument('-o', '--output', type=Path, default=Path('./analysis'),
                        help='Output directory (default: ./analysis)')

    parser.add_argument('--window-size', type=int, default=512,
                        help='Segment length for the windowed DFT (default: 512)')

    parser.add_argument('--window', type=str, default='hann',
                        choices=sorted(WINDOW_FUNCTIONS),
                        help='Window function for the windowed DFT (default: hann)')

    parser.add_argument('--raw-dft-length', type=int, default=10000,
                        help='Maximum segment length for the raw DFT (default: 10000)')

    parser.add_argument('--bias', type=str, default='debiased',
                        choices=['debiased', 'nominal'],
                        help='DC offset model (default: debiased)')

    parser.add_argument('--one-sided', action='store_true',
                        help='Keep only the N/2+1 non-negative frequency bins')

    parser.add_argument('--max-samples', type=int, default=None,
                        help='Maximum samples to load (default: all)')

    parser.add_argument('--no-prng', action='store_true',
                        help='Skip the pseudo-random control series')

    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for the pseudo-random control series')

    parser.add_argument('--no-plots', action='store_true',
                        help='Write text and JSON reports only')

    parser.add_argument('--dark', action='store_true',
                        help='Use dark theme for plots')

    parser.add_argument('-j', '--jobs', type=int, default=1,
                        help='Views analyzed in parallel (default: 1)')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')

    return parser.parse_args(argv)


def build_config(args) -> AnalysisConfig:
    return AnalysisConfig(
        window_size=args.window_size,
        window_type=args.window,
        raw_dft_max_length=args.raw_dft_length,
        bias=args.bias,
        one_sided=args.one_sided,
        output_dir=args.output,
        dark_theme=args.dark,
        render_plots=not args.no_plots,
        include_prng=not args.no_prng,
        prng_seed=args.seed,
        jobs=args.jobs,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = build_config(args)

        if args.file is None or str(args.file) == '-':
            filepath = None
            samples = SampleLoader.load_stream(max_samples=args.max_samples)
        else:
            filepath = args.file.resolve()
            samples = SampleLoader.load(filepath, max_samples=args.max_samples)

        if len(samples) == 0:
            raise EmptySeriesError("analysis")

        results = analyze_views(collect_views(samples, config), config)

        writer = ReportWriter(config, describe_source(filepath))
        renderer = PlotRenderer(config) if config.render_plots else None
        for result in results:
            print_summary(result)
            writer.write_all(result)
            if renderer is not None:
                renderer.render_all(result)

    except (AnalysisError, OSError, ValueError) as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1

    log.info(f"Analysis complete. Output saved to: {config.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
