"""
Pytest fixtures for the settlement kernel test suite.

Provides:
- A fresh SQLite database per test (or DATABASE_URL when set)
- Deterministic clock, fake payout processor and recording notifier
- Factories for users, projects, contracts and milestones
- Service fixtures wired from the default configuration set
- Structured log capture

Environment Variables:
- DATABASE_URL: Database URL to test against.  Defaults to in-memory SQLite.
  Tables are dropped and recreated around every test, so never point this
  at a database you care about.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from settlement_config import get_active_config
from settlement_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from settlement_kernel.domain.clock import DeterministicClock
from settlement_kernel.domain.statuses import ActorRole, MilestoneStatus, ProjectType
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from settlement_kernel.models.contract import Contract, Project
from settlement_kernel.models.fulfillment import Milestone
from settlement_kernel.models.party import User
from settlement_modules.fulfillment.service import FulfillmentService
from settlement_modules.settlement.service import SettlementService
from settlement_services.transfer import TransferError, TransferReceipt

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
    Capture settlement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, fulfillment):
            fulfillment.submit_milestone(...)
            logs = captured_logs()
            assert any(r["message"] == "milestone_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("settlement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """A freshly created schema per test.  SQLite keeps this cheap."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    drop_tables()
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Session with real commits; services own their transactions."""
    sess = get_session()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# External collaborators
# =============================================================================


class FakeTransferService:
    """
    Stand-in payout processor.

    mode:
        "succeed" -- returns a receipt with a sequential transfer id
        "fail"    -- raises TransferError("card_declined")
        "crash"   -- raises RuntimeError("connection reset")
        "hang"    -- blocks until released (for timeout tests)
    """

    def __init__(self, mode: str = "succeed"):
        self.mode = mode
        self.calls: list[dict] = []
        self.release = threading.Event()

    def transfer_to_payee(self, amount, destination_account_id, metadata):
        self.calls.append(
            {
                "amount": amount,
                "destination": destination_account_id,
                "metadata": dict(metadata),
            }
        )
        if self.mode == "fail":
            raise TransferError("card_declined")
        if self.mode == "crash":
            raise RuntimeError("connection reset")
        if self.mode == "hang":
            self.release.wait(5)
        return TransferReceipt(transfer_id=f"tr_{len(self.calls):04d}")


class RecordingNotifier:
    """Records every dispatched notification.  ``broken=True`` raises instead."""

    def __init__(self, broken: bool = False):
        self.broken = broken
        self.sent: list[tuple[str, UUID, dict]] = []

    def dispatch(self, event_type, recipient_id, payload):
        if self.broken:
            raise ConnectionError("notification backend unavailable")
        self.sent.append((event_type, recipient_id, dict(payload)))

    def events(self) -> list[str]:
        return [event for event, _, _ in self.sent]


@pytest.fixture
def transfers() -> Generator[FakeTransferService, None, None]:
    service = FakeTransferService()
    yield service
    service.release.set()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config():
    return get_active_config()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_user(session):
    def _make(
        role: ActorRole = ActorRole.TALENT,
        display_name: str | None = None,
        province: str | None = "ON",
        payout_account_id: str | None = "acct_talent",
        tax_exempt: bool = False,
        tax_number: str | None = None,
    ) -> User:
        user = User(
            id=uuid4(),
            role=role.value,
            display_name=display_name or f"{role.value}-{uuid4().hex[:6]}",
            province=province if role is ActorRole.TALENT else None,
            payout_account_id=payout_account_id if role is ActorRole.TALENT else None,
            tax_exempt=tax_exempt,
            tax_number=tax_number,
        )
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def business(make_user) -> User:
    return make_user(ActorRole.BUSINESS, display_name="Acme Corp")


@pytest.fixture
def talent(make_user) -> User:
    return make_user(ActorRole.TALENT, display_name="Jordan Lee")


@pytest.fixture
def make_contract(session, business, talent):
    def _make(
        project_type: ProjectType = ProjectType.FIXED_PRICE,
        hourly_rate: Decimal | None = None,
        business_user: User | None = None,
        talent_user: User | None = None,
    ) -> Contract:
        owner = business_user or business
        worker = talent_user or talent
        project = Project(
            id=uuid4(),
            title=f"{project_type.value.lower()} project",
            type=project_type.value,
            business_id=owner.id,
        )
        contract = Contract(
            id=uuid4(),
            project=project,
            business_id=owner.id,
            talent_id=worker.id,
            hourly_rate=hourly_rate,
        )
        session.add_all([project, contract])
        session.commit()
        return contract

    return _make


@pytest.fixture
def fixed_contract(make_contract) -> Contract:
    return make_contract(ProjectType.FIXED_PRICE)


@pytest.fixture
def hourly_contract(make_contract) -> Contract:
    return make_contract(ProjectType.HOURLY, hourly_rate=Decimal("40.00"))


@pytest.fixture
def make_milestone(session):
    def _make(
        contract: Contract,
        title: str = "Design",
        amount: Decimal = Decimal("500.00"),
        order: int = 1,
        status: MilestoneStatus = MilestoneStatus.PENDING,
    ) -> Milestone:
        milestone = Milestone(
            id=uuid4(),
            contract_id=contract.id,
            title=title,
            amount=amount,
            order=order,
            status=status.value,
        )
        session.add(milestone)
        session.commit()
        return milestone

    return _make


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def fulfillment(session, config, transfers, notifier, clock) -> FulfillmentService:
    return FulfillmentService.from_config(
        session, config, transfer_service=transfers, notifier=notifier, clock=clock,
    )


@pytest.fixture
def settlement(session, config, transfers, notifier, clock) -> SettlementService:
    return SettlementService.from_config(
        session, config, transfer_service=transfers, notifier=notifier, clock=clock,
    )
