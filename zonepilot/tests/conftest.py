import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[2]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep ZONEPILOT_* variables and stray .env files out of the tests."""
    for key in list(os.environ):
        if key.startswith("ZONEPILOT_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def now() -> datetime:
    # Wednesday
    return datetime(2026, 7, 1, 12, 0, tzinfo=UTC)
