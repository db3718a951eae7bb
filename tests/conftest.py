"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the circulation desk,
including an in-memory database, a controllable clock, a recording
notification sink and sample copies and members.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from librarydesk.authors import AuthorManager
from librarydesk.catalog import CatalogManager, CopyCreate
from librarydesk.circulation import CirculationManager
from librarydesk.config import Config
from librarydesk.db.sqlite import Database
from librarydesk.events import EventManager
from librarydesk.members import MemberCreate
from librarydesk.notifications import MemoryNotificationSink


START = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ============================================================================
# Infrastructure Fixtures
# ============================================================================


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def config() -> Config:
    """Lending rules with the stock defaults."""
    return Config(
        db_path=Path(":memory:"),
        loan_days=14,
        renewal_days=14,
        fine_per_day=50,
        due_soon_days=3,
        hold_grace_hours=24,
        event_reminder_days=3,
        notification_capacity=50,
        log_level="WARNING",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> MemoryNotificationSink:
    return MemoryNotificationSink()


@pytest.fixture
def catalog(db, sink) -> CatalogManager:
    return CatalogManager(db, notifier=sink)


@pytest.fixture
def authors(db) -> AuthorManager:
    return AuthorManager(db)


@pytest.fixture
def events(db, sink, config, clock) -> EventManager:
    """Event manager wired to the test clock and sink."""
    return EventManager(db, notifier=sink, config=config, clock=clock)


@pytest.fixture
def desk(db, sink, config, clock) -> CirculationManager:
    """Circulation manager wired to the test clock and sink."""
    return CirculationManager(db, notifier=sink, config=config, clock=clock)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def copies(catalog):
    """Catalogue three copies and return their ISBNs."""
    data = [
        CopyCreate(isbn="9780441172719", title="Dune", author="Frank Herbert"),
        CopyCreate(isbn="9780593135204", title="Project Hail Mary", author="Andy Weir"),
        CopyCreate(isbn="9780743273565", title="The Great Gatsby", author="F. Scott Fitzgerald"),
    ]
    return [catalog.add_copy(d).isbn for d in data]


@pytest.fixture
def members(catalog):
    """Register three members with fixed ids and return the ids."""
    for member_id, name in (("ana", "Ana Perez"), ("ben", "Ben Okafor"), ("cleo", "Cleo Ruiz")):
        catalog.register_member(MemberCreate(id=member_id, name=name))
    return ["ana", "ben", "cleo"]
