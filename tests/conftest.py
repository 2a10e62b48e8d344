"""Shared pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

# Add the src directory to Python path so tests can import without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from relay.providers.base import LLMResponse  # noqa: E402


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep():
    """Sleep replacement that returns immediately."""
    return RecordingSleep()


@pytest.fixture
def provider():
    """Chat provider mock whose generate() is an AsyncMock."""
    mock = Mock()
    mock.name = "fake"
    mock.generate = AsyncMock(return_value=LLMResponse(content="Hello!", model="test-model"))
    mock.aclose = AsyncMock()
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def bundled_csv(tmp_path):
    """A bundled dataset file on disk."""
    path = tmp_path / "bundled.csv"
    path.write_text("name,score\nlocal,1\n", encoding="utf-8")
    return path
