from decimal import Decimal

import pytest
from sqlmodel import Session, SQLModel

from ..core.db import create_engine_for_url
from ..core.money import from_cents
from ..models import OrderStatus
from ..services import AccountRepository, BalanceService, OrderRepository, OrderService


@pytest.fixture
def engine(tmp_path):
    engine = create_engine_for_url(f"sqlite:///{tmp_path / 'test.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    def _factory() -> Session:
        return Session(engine)

    return _factory


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


class LedgerReader:
    """Reads account and order state through short-lived sessions."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def open_account(self, user_id: str) -> None:
        with self.session_factory() as session:
            BalanceService(session).open_account(user_id)

    def upload(self, user_id: str, number: str) -> None:
        with self.session_factory() as session:
            OrderService(session).upload(user_id, number)

    def balance(self, user_id: str) -> tuple[Decimal, Decimal]:
        with self.session_factory() as session:
            account = AccountRepository(session).get_account(user_id)
            return from_cents(account.current_balance_cents), from_cents(account.withdrawn_cents)

    def order(self, number: str):
        with self.session_factory() as session:
            return OrderRepository(session).get_order(number)

    def accepted_accrual(self, user_id: str) -> Decimal:
        with self.session_factory() as session:
            orders = OrderRepository(session).list_by_user(user_id)
            return from_cents(
                sum(o.accrual_cents for o in orders if o.status == OrderStatus.PROCESSED)
            )


@pytest.fixture
def ledger(session_factory) -> LedgerReader:
    return LedgerReader(session_factory)
