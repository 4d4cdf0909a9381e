"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend, make `backend/` importable and
reset process-local singletons (wired services, cached settings) so tests do
not leak fakes into each other.
"""
import os
import sys
from pathlib import Path

import pytest

# Tests never talk to a real Supabase project or email provider.
os.environ.setdefault("TRAINWITHUS_ENV", "test")

# Ensure modules in backend/ and the test helpers are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(BACKEND_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_wiring_between_tests():
    """Drop injected services and cached settings after each test.

    Behavior:
        - Tests inject fakes with `wiring.set_services(...)`; resetting to None
          restores lazy wiring so a forgotten injection cannot leak.
        - `get_settings` is lru-cached; clearing it lets tests monkeypatch env.
    """
    from web import wiring
    from web.config import get_settings

    get_settings.cache_clear()
    yield
    wiring.set_services(None)
    get_settings.cache_clear()
