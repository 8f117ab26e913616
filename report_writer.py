"""
Text and JSON reports for analyzed sample views.

Files are written as ``<output_dir>/<view>-<suffix>.<ext>``.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from analysis_pipeline import AnalysisConfig, AnalysisResult

log = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 65536  # Chunk size for file hashing (64KB)
ANALYZER_VERSION = '1.0.0'
DIGEST_ALGORITHMS = ('sha256', 'sha3_256')


def analysis_file(output_dir: Path, what: str, suffix: str, ext: str) -> Path:
    """Path of one output file for a view."""
    return output_dir / f"{what}-{suffix}.{ext}"


def file_digests(filepath: Path, algorithms: Tuple[str, ...] = DIGEST_ALGORITHMS) -> Dict[str, str]:
    """Hex digests of a file, keyed by hashlib algorithm name."""
    if not filepath.is_file():
        raise FileNotFoundError(f"File not found at: {filepath}")

    hashers = {name: hashlib.new(name) for name in algorithms}
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            for hasher in hashers.values():
                hasher.update(chunk)
    return {name: hasher.hexdigest() for name, hasher in hashers.items()}


def describe_source(filepath: Optional[Path]) -> Dict[str, Any]:
    """Metadata block for the capture file, or a stdin marker."""
    if filepath is None:
        return {'source': 'stdin'}
    stat = filepath.stat()
    metadata = {
        'source_file': str(filepath.absolute()),
        'filename': filepath.name,
        'file_size_bytes': stat.st_size,
        'file_modified': datetime.fromtimestamp(stat.st_mtime).isoformat(),
    }
    for name, digest in file_digests(filepath).items():
        metadata[f"file_{name}"] = digest
    metadata['hash_timestamp_utc'] = datetime.now(timezone.utc).isoformat()
    return metadata


class ReportWriter:
    """Writes the per-view stats, histogram and metrics files."""

    def __init__(self, config: AnalysisConfig, source_metadata: Optional[Dict[str, Any]] = None):
        self.config = config
        self.source_metadata = source_metadata or {'source': 'unknown'}
        config.output_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, what: str, suffix: str, ext: str) -> Path:
        return analysis_file(self.config.output_dir, what, suffix, ext)

    def write_stats(self, result: AnalysisResult) -> Path:
        path = self._path(result.label, "stats", "txt")
        path.write_text(result.stats.to_text())
        log.info(f"Saved: {path.name}")
        return path

    def write_histogram(self, result: AnalysisResult) -> Path:
        path = self._path(result.label, "hist", "txt")
        path.write_text(result.histogram.to_text())
        log.info(f"Saved: {path.name}")
        return path

    def write_metrics(self, result: AnalysisResult) -> Path:
        """Full JSON record of one view plus a digest sidecar."""
        path = self._path(result.label, "metrics", "json")
        output_data = {
            'analysis_timestamp': datetime.now().isoformat(),
            'analyzer_version': ANALYZER_VERSION,
            'source': self.source_metadata,
            'analysis_config': self.config.to_dict(),
            **result.to_dict(),
        }
        with open(path, 'w') as f:
            json.dump(output_data, f, indent=2)

        digests = file_digests(path)
        with open(path.with_suffix('.sha256'), 'w') as hf:
            for name, digest in digests.items():
                hf.write(f"{name.upper()}: {digest}\n")
            hf.write(f"Timestamp: {datetime.now(timezone.utc).isoformat()}\n")
        log.info(f"Saved: {path.name} (SHA256 {digests['sha256'][:16]}...)")
        return path

    def write_all(self, result: AnalysisResult) -> List[Path]:
        return [
            self.write_stats(result),
            self.write_histogram(result),
            self.write_metrics(result),
        ]
