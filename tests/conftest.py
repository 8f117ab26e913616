"""
Pytest configuration for the sample analysis tests.

Ensures the repository root is importable and plots render headless.
"""

import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

# Ensure repository root is in path for imports
root_path = Path(__file__).parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))
