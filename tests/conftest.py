"""Pytest configuration shared by all test suites"""

import sys
from pathlib import Path

# Add project root to path for src imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Add tests directory to path for shared fakes
tests_dir = Path(__file__).parent
sys.path.insert(0, str(tests_dir))
