from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "sitemod-home"
os.environ.setdefault("SITEMOD_HOME", str(SANDBOX_HOME))
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402

from sitemod.settings import RuntimeSettings  # noqa: E402


@pytest.fixture
def settings(tmp_path: Path) -> RuntimeSettings:
    home = tmp_path / "home"
    return RuntimeSettings(
        home_dir=home,
        state_dir=home / "state",
        log_dir=home / "logs",
        request_timeout=5,
    )


@pytest.fixture
def oauth_settings(tmp_path: Path) -> RuntimeSettings:
    home = tmp_path / "home"
    return RuntimeSettings(
        home_dir=home,
        state_dir=home / "state",
        log_dir=home / "logs",
        request_timeout=5,
        webflow_client_id="client-id",
        webflow_client_secret="client-secret",
    )
