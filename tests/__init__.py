"""
Test package for obspen.

Subdirectories mirror the structure of the main packages:
- core: Tests for coordinate mapping and interpolation
- cost_functions: Tests for the theseus cost functions

To run all tests:
    python -m unittest discover tests

To run tests in a specific directory:
    python -m unittest discover tests/core
"""

import sys
from pathlib import Path

# Add the project root to the path so tests run from any directory
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))
