"""
Pytest fixtures for the escrow ledger test suite.

Provides:
- Database sessions on a fresh schema for every test
- Deterministic clock, in-memory custody and ledger factories
- Structured log capture

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.
  If not set, uses an in-memory SQLite database.
"""

import json
import logging
import os
from datetime import datetime, timedelta
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from escrow_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    init_engine_from_url,
    reset_engine,
)
from escrow_kernel.db.immutability import register_immutability_listeners
from escrow_kernel.domain.clock import DeterministicClock
from escrow_kernel.domain.custody import InMemoryCustody
from escrow_kernel.domain.events import InMemoryEventLog
from escrow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from escrow_kernel.services.project_ledger import ProjectLedger
from tests.support import CLIENT, FREELANCER, OWNER, START_TIME

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture escrow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create_project(...)
            logs = captured_logs()
            assert any(r["message"] == "create_project_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("escrow_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Engine with a freshly created schema, dropped after the test."""
    init_engine_from_url(get_database_url())
    create_tables()
    register_immutability_listeners()
    yield get_engine()
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine) -> Session:
    """
    Plain session on the test schema.

    The ledger commits and rolls back itself, so tests get real
    transaction boundaries rather than a wrapping SAVEPOINT.
    """
    s = Session(bind=engine)
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(START_TIME)


@pytest.fixture
def custody() -> InMemoryCustody:
    return InMemoryCustody()


@pytest.fixture
def event_log() -> InMemoryEventLog:
    return InMemoryEventLog()


@pytest.fixture
def make_ledger(session, clock):
    """Factory for ledgers on the shared test session."""

    def _make(custody=None, owner=OWNER, **kwargs) -> ProjectLedger:
        return ProjectLedger(
            session,
            custody if custody is not None else InMemoryCustody(),
            owner,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def ledger(make_ledger, custody, event_log) -> ProjectLedger:
    return make_ledger(custody, subscribers=[event_log])


@pytest.fixture
def deadline(clock) -> datetime:
    """A deadline seven days after the test start time."""
    return clock.now() + timedelta(days=7)


@pytest.fixture
def open_project(ledger, deadline):
    """Factory: create an OPEN project funded by CLIENT."""

    def _create(budget=1000, client=CLIENT, title="Logo design"):
        return ledger.create_project(
            client, title, "Vector logo plus brand colours", deadline, budget
        )

    return _create


@pytest.fixture
def submitted_project(ledger, open_project):
    """Factory: a project bid on by FREELANCER, assigned and submitted."""

    def _create(budget=1000):
        project = open_project(budget)
        ledger.submit_bid(FREELANCER, project.id)
        ledger.assign_freelancer(CLIENT, project.id, FREELANCER)
        return ledger.submit_work(FREELANCER, project.id)

    return _create

