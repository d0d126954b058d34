"""Test configuration for ensuring package imports and shared fixtures."""

import datetime
import os
import sys
from datetime import UTC

import pytest

# Add the repository root (the directory containing this file) to ``sys.path``
# if it is not already present.  This mirrors the behaviour of running the
# tests via ``python -m pytest`` where the working directory is automatically on
# the import path.
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from aid_ledger.core.models import LedgerSnapshot, Role  # noqa: E402
from aid_ledger.core.storage import LedgerStore  # noqa: E402
from aid_ledger.workflow import Workflow  # noqa: E402


class FakeClock:
    """Controllable replacement for ``utcnow``."""

    def __init__(self) -> None:
        self.now = datetime.datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += datetime.timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    """An open store backed by ``tmp_path`` that starts empty."""
    s = LedgerStore(tmp_path / "ledger.json", seed=LedgerSnapshot(), clock=clock).open()
    yield s
    s.close()


@pytest.fixture
def workflow(store):
    return Workflow(store)


@pytest.fixture
def admin(workflow):
    return workflow.register_user("Admin Overseer", "audit@example.org", role=Role.ADMIN)


@pytest.fixture
def student(workflow):
    return workflow.register_user("Ankita Das", "ankita@example.edu", college_name="IIT Delhi")
