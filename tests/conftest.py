"""Test configuration and fixtures for the Library Lending MCP Server.

1. Isolated databases - each test gets its own SQLite file
2. A controllable clock - due dates and overdue detection without sleeping
3. Service wiring - the same objects the server builds, pointed at the test database
"""

from collections.abc import Callable, Generator
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import logfire
import pytest

from library_lending.catalog import CatalogService
from library_lending.config import ServerConfig, reset_config
from library_lending.database import (
    BookCreateSchema,
    DatabaseManager,
    MemberCreateSchema,
    MemberRepository,
    reset_db_manager,
)
from library_lending.identity import MemberDirectory
from library_lending.models import BookInventory
from library_lending.policy import LendingPolicy
from library_lending.reservations import ReservationService, reset_reservation_service

logfire.configure(send_to_logfire=False, console=False)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# === Isolation ===


@pytest.fixture(autouse=True)
def isolated_globals(tmp_path: Path, monkeypatch) -> Generator[None, None, None]:
    """Keep the process-wide config, database manager and service out of each test."""
    monkeypatch.setenv("LIBRARY_LENDING_DATABASE_PATH", str(tmp_path / "default.db"))
    reset_config()
    reset_db_manager()
    reset_reservation_service()
    yield
    reset_reservation_service()
    reset_db_manager()
    reset_config()


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_lending.db"


@pytest.fixture
def test_config(test_db_path: Path) -> ServerConfig:
    return ServerConfig(
        server_name="test-library-lending",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def db_manager(test_db_path: Path) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(f"sqlite:///{test_db_path}", busy_timeout=30.0)
    manager.init_database()
    yield manager
    manager.close()


# === Domain fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 3, 10, 0, 0))


@pytest.fixture
def members(db_manager: DatabaseManager) -> SimpleNamespace:
    """Two members in good standing and one blacklisted member."""
    with db_manager.session_scope() as session:
        repo = MemberRepository(session)
        alice = repo.create(MemberCreateSchema(email="alice@example.org", name="Alice"))
        bob = repo.create(MemberCreateSchema(email="bob@example.org", name="Bob"))
        mallory = repo.create(
            MemberCreateSchema(email="mallory@example.org", name="Mallory", is_blacklisted=True)
        )
    return SimpleNamespace(alice=alice.id, bob=bob.id, mallory=mallory.id)


@pytest.fixture
def catalog(db_manager: DatabaseManager, clock: FakeClock) -> CatalogService:
    return CatalogService(db_manager, clock=clock)


@pytest.fixture
def make_book(catalog: CatalogService) -> Callable[..., BookInventory]:
    def _make_book(total_copies: int = 1, title: str = "The Left Hand of Darkness") -> BookInventory:
        return catalog.add_book(
            BookCreateSchema(title=title, author="Ursula K. Le Guin", total_copies=total_copies)
        )

    return _make_book


@pytest.fixture
def make_service(
    db_manager: DatabaseManager, clock: FakeClock
) -> Callable[..., ReservationService]:
    """Build a service with policy overrides, e.g. ``make_service(max_active_reservations=2)``."""

    def _make_service(**policy_overrides) -> ReservationService:
        return ReservationService(
            db_manager,
            MemberDirectory(db_manager),
            LendingPolicy(**policy_overrides),
            clock=clock,
        )

    return _make_service


@pytest.fixture
def service(make_service) -> ReservationService:
    return make_service()
