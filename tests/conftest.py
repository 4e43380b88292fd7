from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "polkaregistry" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from polkaregistry.env import reset_dotenv_state  # noqa: E402


def _runtime_env_names() -> list[str]:
    return [k for k in os.environ if k.startswith("POLKAREGISTRY_")]


@pytest.fixture(autouse=True)
def _isolated_runtime_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    for name in _runtime_env_names():
        monkeypatch.delenv(name, raising=False)
    # No stray .env from the working directory.
    monkeypatch.setenv("POLKAREGISTRY_DOTENV_PATH", str(tmp_path / "absent.env"))
    reset_dotenv_state()
    yield
    # Variables written straight to os.environ (dotenv, apply_runtime_config_to_env).
    for name in _runtime_env_names():
        os.environ.pop(name, None)
    reset_dotenv_state()
