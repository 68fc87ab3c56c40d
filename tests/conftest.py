"""
Pytest configuration and fixtures.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config.example.conf"


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create files (with parent directories) below root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def example_config_path() -> Path:
    """Path to the example config shipped at the repository root."""
    return EXAMPLE_CONFIG


@pytest.fixture
def sysfs(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Factory building a fake sysfs tree under tmp_path."""

    def build(files: dict[str, str]) -> Path:
        return write_tree(tmp_path, files)

    return build


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
