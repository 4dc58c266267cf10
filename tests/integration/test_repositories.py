"""Integration tests for the SQLAlchemy document store"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from finpulse.dependencies import create_core
from finpulse.domain.exceptions import NotFoundError, ValidationError
from finpulse.domain.flows import EntityKind
from finpulse.domain.models import Quoted, Unquoted, UserPreferences
from finpulse.domain.ports import FieldFilter
from finpulse.infrastructure.database import session as db_session
from finpulse.infrastructure.database.models import Document
from finpulse.infrastructure.database.repositories import (
    INVESTMENTS,
    LOANS,
    DocumentPreferencesProvider,
    income_repository,
    investment_repository,
    loan_repository,
)

OWNER_ID = "user_1"


def loan_payload(**overrides):
    payload = {
        "id": "loan_1",
        "owner_id": OWNER_ID,
        "type": "car",
        "principal": {"amount": "25000", "currency": "USD"},
        "current_balance": {"amount": "20000", "currency": "USD"},
        "interest_rate": "5.5",
        "term_months": 60,
        "monthly_payment": {"amount": "478.66", "currency": "USD"},
        "start_date": "2023-01-01",
        "next_payment_date": "2024-02-01",
    }
    payload.update(overrides)
    return payload


async def test_create_and_read_loan(db, make_loan):
    repo = loan_repository(db)
    loan = make_loan(principal=25000)

    await repo.create(loan)
    db.commit()

    stored = await repo.get_by_id(OWNER_ID, "loan_1")
    assert stored == loan
    assert stored.current_balance.amount == Decimal("20000")
    assert await repo.get_by_id("someone_else", "loan_1") is None


async def test_create_assigns_id(db, make_income):
    repo = income_repository(db)
    income = make_income("", 1000)

    created = await repo.create(income)

    assert created.id
    assert [i.id for i in await repo.get_all(OWNER_ID)] == [created.id]


async def test_duplicate_create_rejected(db, make_loan):
    repo = loan_repository(db)
    await repo.create(make_loan())
    db.commit()

    with pytest.raises(ValidationError):
        await repo.create(make_loan())

    assert len(await repo.get_all(OWNER_ID)) == 1


async def test_duplicate_create_keeps_pending_changes(db, make_loan):
    """Test a rejected duplicate leaves earlier uncommitted creates in place"""
    repo = loan_repository(db)
    await repo.create(make_loan("l1"))
    await repo.create(make_loan("l2"))

    with pytest.raises(ValidationError):
        await repo.create(make_loan("l2"))

    assert [loan.id for loan in await repo.get_all(OWNER_ID)] == ["l1", "l2"]

    db.commit()
    assert [loan.id for loan in await repo.get_all(OWNER_ID)] == ["l1", "l2"]


async def test_update_and_delete(db, make_loan):
    repo = loan_repository(db)
    loan = await repo.create(make_loan())

    loan.current_balance = loan.current_balance.with_amount(15000)
    await repo.update(loan)
    assert (await repo.get_by_id(OWNER_ID, "loan_1")).current_balance.amount == 15000

    await repo.delete(OWNER_ID, "loan_1")
    assert await repo.get_all(OWNER_ID) == []

    with pytest.raises(NotFoundError):
        await repo.delete(OWNER_ID, "loan_1")
    with pytest.raises(NotFoundError):
        await repo.update(loan)


async def test_filtered_query(db, make_income):
    repo = income_repository(db)
    await repo.create(make_income("a", 1000))
    await repo.create(make_income("b", 2000, is_active=False))
    await repo.create(make_income("c", 3000, currency="EUR"))

    active = await repo.get_filtered(OWNER_ID, [FieldFilter("is_active", "==", True)])
    started = await repo.get_filtered(OWNER_ID, [FieldFilter("start_date", "<=", date(2023, 6, 1))])

    assert sorted(i.id for i in active) == ["a", "c"]
    assert len(started) == 3


def test_unsupported_filter_operator():
    with pytest.raises(ValueError):
        FieldFilter("is_active", "~=", True)


async def test_negative_balance_payload_rejected(db):
    balance = {"amount": "-5", "currency": "USD"}
    db.add(Document(collection=LOANS, owner_id=OWNER_ID, entity_id="bad", payload=loan_payload(current_balance=balance)))
    db.commit()

    with pytest.raises(ValidationError):
        await loan_repository(db).get_all(OWNER_ID)


@pytest.mark.parametrize("amount", ["NaN", "Infinity"])
async def test_non_finite_payload_rejected(db, amount):
    balance = {"amount": amount, "currency": "USD"}
    db.add(Document(collection=LOANS, owner_id=OWNER_ID, entity_id="bad", payload=loan_payload(current_balance=balance)))
    db.commit()

    with pytest.raises(ValidationError):
        await loan_repository(db).get_by_id(OWNER_ID, "bad")


@pytest.mark.parametrize(
    "current_price,expected_quoted",
    [
        (None, False),
        ({"amount": "0", "currency": "USD"}, False),
        ({"amount": "175", "currency": "USD"}, True),
    ],
)
async def test_stored_price_becomes_price_point(db, current_price, expected_quoted):
    payload = {
        "id": "aapl",
        "owner_id": OWNER_ID,
        "type": "stocks",
        "symbol": "AAPL",
        "quantity": "10",
        "purchase_price": {"amount": "150", "currency": "usd"},
        "current_price": current_price,
    }
    db.add(Document(collection=INVESTMENTS, owner_id=OWNER_ID, entity_id="aapl", payload=payload))
    db.commit()

    investment = await investment_repository(db).get_by_id(OWNER_ID, "aapl")

    assert isinstance(investment.current_price, Quoted if expected_quoted else Unquoted)
    assert investment.currency == "USD"
    expected_value = Decimal("1750") if expected_quoted else Decimal("1500")
    assert investment.current_value.amount == expected_value


async def test_preferences_default_and_save(db):
    provider = DocumentPreferencesProvider(db, default_currency="GBP")

    assert (await provider.get_preferences(OWNER_ID)).primary_currency == "GBP"

    await provider.save_preferences(OWNER_ID, UserPreferences(primary_currency="eur", locale="de-DE"))
    db.commit()

    preferences = await provider.get_preferences(OWNER_ID)
    assert preferences.primary_currency == "EUR"
    assert preferences.locale == "de-DE"


async def test_create_core_over_database(db, make_loan, make_income):
    await loan_repository(db).create(make_loan("car", monthly_payment=400))
    await loan_repository(db).create(make_loan("card", balance=0, monthly_payment=50))
    await income_repository(db).create(make_income("salary", 5000))
    db.commit()

    core = create_core(db)

    payments = await core.compute_monthly_aggregate(OWNER_ID, EntityKind.LOAN, "USD")
    ratio = await core.compute_debt_to_income_ratio(OWNER_ID, "USD")

    assert payments.amount == Decimal("400")
    assert ratio == pytest.approx(8.0)


def test_get_db_closes_session(monkeypatch):
    session = MagicMock()
    monkeypatch.setattr(db_session, "SessionLocal", MagicMock(return_value=session))

    gen = db_session.get_db()
    assert next(gen) is session
    gen.close()

    session.close.assert_called_once()


def test_session_scope_commits(monkeypatch):
    session = MagicMock()
    monkeypatch.setattr(db_session, "SessionLocal", MagicMock(return_value=session))

    with db_session.session_scope() as db:
        db.add("row")

    session.commit.assert_called_once()
    session.rollback.assert_not_called()
    session.close.assert_called_once()


def test_session_scope_rolls_back_on_error(monkeypatch):
    session = MagicMock()
    monkeypatch.setattr(db_session, "SessionLocal", MagicMock(return_value=session))

    with pytest.raises(NotFoundError):
        with db_session.session_scope():
            raise NotFoundError("missing")

    session.commit.assert_not_called()
    session.rollback.assert_called_once()
    session.close.assert_called_once()
