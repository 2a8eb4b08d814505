import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import

from xhash import XHash, xh  # noqa: E402


@pytest.fixture
def letters() -> XHash:
    """Mixed container: two auto-indexed values around an explicit key."""

    return xh("a", {"name": "x"}, "b")

