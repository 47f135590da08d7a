"""
Shared fixtures: a throwaway SQLite database per test, a private payment
event bus, and a recompute coordinator wired to both.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RECOMPUTE_ASYNC", "false")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from rentdesk.core.database import Base  # noqa: E402
from rentdesk.core.scheduler import RecomputeScheduler  # noqa: E402
from rentdesk.modules.expenses.models import Expense  # noqa: E402,F401
from rentdesk.modules.payments.events import PaymentEventBus  # noqa: E402
from rentdesk.modules.payments.models import Payment  # noqa: E402,F401
from rentdesk.modules.tax.coordinator import RecomputeCoordinator  # noqa: E402
from rentdesk.modules.tax.models import RecomputeFailure, TaxSummary  # noqa: E402,F401


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rentdesk.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def bus():
    return PaymentEventBus()


@pytest.fixture()
def coordinator(session_factory, bus):
    coordinator = RecomputeCoordinator(
        session_factory=session_factory,
        scheduler=RecomputeScheduler(run_async=False),
    )
    coordinator.attach(bus)
    yield coordinator
    coordinator.detach(bus)
