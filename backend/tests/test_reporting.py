# backend/tests/test_reporting.py
from __future__ import annotations

from datetime import date

import pytest

from rentfolio.domain.errors import ValidationError
from rentfolio.domain.reporting import (
    Period,
    capital_insights,
    collection_stats,
    dashboard_summary,
    payment_analytics,
    property_summary,
    rent_roll,
)
from rentfolio.schemas import Payment, PaymentType, UserRole
from rentfolio.seed.demo import demo_state

from conftest import fast_hash

MARCH = Period.build("monthly", month="2026-03")


@pytest.fixture
def state():
    return demo_state(fast_hash, today=date(2026, 3, 1))


def _pay(pid, month, amount, ptype=PaymentType.RENT, paid_at="2026-03-03T10:00:00.000Z", **kw):
    return Payment(id=pid, record_id="r1", month=month, amount=amount, type=ptype, paid_at=paid_at, **kw)


def test_period_validation():
    with pytest.raises(ValidationError):
        Period.build("weekly")
    with pytest.raises(ValidationError):
        Period.build("monthly", month="March")
    with pytest.raises(ValidationError):
        Period.build("monthly", month="2026-13")
    with pytest.raises(ValidationError):
        Period.build("monthly", month="2026-3")
    with pytest.raises(ValidationError):
        Period.build("monthly", month="abcd-ef")
    with pytest.raises(ValidationError):
        Period.build("custom", start=date(2026, 3, 1))
    with pytest.raises(ValidationError):
        Period.build("custom", start=date(2026, 3, 2), end=date(2026, 3, 1))
    assert Period.build("monthly", today=date(2026, 5, 9)).month == "2026-05"


def test_range_multiplier():
    today = date(2026, 3, 10)
    assert Period.build("monthly", month="2026-03").range_multiplier(today) == 1
    assert Period.build("annual", year="2025").range_multiplier(today) == 12
    assert Period.build("annual", year="2026").range_multiplier(today) == 3
    custom = Period.build("custom", start=date(2026, 1, 1), end=date(2026, 3, 1))
    assert custom.range_multiplier(today) == 2
    same_day = Period.build("custom", start=date(2026, 1, 1), end=date(2026, 1, 1))
    assert same_day.range_multiplier(today) == 1


def test_rent_roll_status(state):
    row = rent_roll(state, UserRole.ADMIN, MARCH, today=date(2026, 3, 4))[0]
    assert row["tenantName"] == "101"
    assert row["rentAmount"] == 1200.0
    assert row["dueDay"] == 5
    assert row["status"] == "PENDING"
    assert row["hasDepositOwed"] is True

    assert rent_roll(state, UserRole.ADMIN, MARCH, today=date(2026, 3, 10))[0]["status"] == "OVERDUE"

    state.payments = [_pay("pay1", "2026-03", 1200)]
    row = rent_roll(state, UserRole.ADMIN, MARCH, today=date(2026, 3, 10))[0]
    assert row["status"] == "PAID"
    assert row["isRentPaid"] is True


def test_rent_roll_due_day_clamped_to_month_end(state):
    state.property_types[0] = state.property_types[0].model_copy(update={"default_due_date_day": 31})
    feb = Period.build("monthly", month="2026-02")
    assert rent_roll(state, UserRole.ADMIN, feb, today=date(2026, 2, 28))[0]["status"] == "PENDING"
    assert rent_roll(state, UserRole.ADMIN, feb, today=date(2026, 3, 1))[0]["status"] == "OVERDUE"


def test_rent_roll_search_and_scoping(state):
    assert rent_roll(state, UserRole.ADMIN, MARCH, search="skyline", today=date(2026, 3, 1))
    assert rent_roll(state, UserRole.ADMIN, MARCH, search="nomatch", today=date(2026, 3, 1)) == []
    assert rent_roll(state, UserRole.ADMIN, MARCH, property_id="other", today=date(2026, 3, 1)) == []

    state.properties[0] = state.properties[0].model_copy(update={"is_visible_to_manager": False})
    assert rent_roll(state, UserRole.MANAGER, MARCH, today=date(2026, 3, 1)) == []
    assert len(rent_roll(state, UserRole.VIEWER, MARCH, today=date(2026, 3, 1))) == 1


def test_collection_stats(state):
    state.payments = [
        _pay("pay1", "2026-03", 1200),
        _pay("dep1", "ONE_TIME", 2400, PaymentType.DEPOSIT),
    ]
    stats = collection_stats(state, UserRole.ADMIN, MARCH, today=date(2026, 3, 10))
    assert stats["expected"] == 1200.0
    assert stats["collected"] == 1200.0
    assert stats["pending"] == 0.0
    assert stats["progress"] == 100.0
    assert stats["heldDeposits"] == 2400.0
    assert stats["pendingByProperty"] == []


def test_held_deposits_follow_manager_visibility(state):
    state.payments = [_pay("dep1", "ONE_TIME", 2400, PaymentType.DEPOSIT)]
    state.properties[0] = state.properties[0].model_copy(update={"is_visible_to_manager": False})

    assert collection_stats(state, UserRole.MANAGER, MARCH, today=date(2026, 3, 10))["heldDeposits"] == 0.0
    assert collection_stats(state, UserRole.ADMIN, MARCH, today=date(2026, 3, 10))["heldDeposits"] == 2400.0


def test_collection_stats_annual_multiplier(state):
    stats = collection_stats(state, UserRole.ADMIN, Period.build("annual", year="2025"), today=date(2026, 3, 10))
    assert stats["rangeMultiplier"] == 12
    assert stats["expected"] == 14400.0
    assert stats["pendingByProperty"][0]["amount"] == 14400.0


def test_dashboard_summary(state):
    summary = dashboard_summary(state, UserRole.ADMIN, today=date(2026, 3, 10))
    assert summary["month"] == "2026-03"
    assert summary["activeUnits"] == 1
    assert summary["vacantUnits"] == 0
    assert summary["monthlyRentExpected"] == 1200.0
    assert summary["occupancyRate"] == 100.0
    assert summary["topUnpaid"][0]["recordId"] == "r1"

    state.payments = [_pay("pay1", "2026-03", 1200), _pay("dep1", "ONE_TIME", 2400, PaymentType.DEPOSIT)]
    summary = dashboard_summary(state, UserRole.ADMIN, today=date(2026, 3, 10))
    assert summary["collectedThisMonth"] == 1200.0
    assert summary["monthlyTotalCollected"] == 3600.0
    assert summary["collectionRate"] == 100.0
    assert summary["topUnpaid"] == []


def test_vacant_unit_counts_toward_occupancy(state):
    state.record_values = [v.model_copy(update={"value": "Vacant"}) if v.column_id == "c6" else v for v in state.record_values]
    summary = dashboard_summary(state, UserRole.ADMIN, today=date(2026, 3, 10))
    assert summary["activeUnits"] == 0
    assert summary["vacantUnits"] == 1
    assert summary["monthlyRentExpected"] == 0.0
    assert summary["occupancyRate"] == 0.0


def test_property_summary(state):
    state.payments = [_pay("pay1", "2026-03", 1000)]
    rows = property_summary(state, UserRole.ADMIN, today=date(2026, 3, 10))
    assert rows == [{"propertyId": "p1", "name": "Skyline Heights", "target": 1200.0, "collected": 1000.0}]


def test_payment_analytics_net_flow(state):
    state.payments = [
        _pay("pay1", "2026-03", 1200, paid_to="Bank Account", payment_mode="Bank Transfer"),
        _pay("el1", "2026-03", 80, PaymentType.ELECTRICITY),
        _pay("dep1", "ONE_TIME", 2400, PaymentType.DEPOSIT, is_refunded=True),
        _pay("old", "2026-02", 1200, paid_at="2026-02-03T10:00:00.000Z"),
    ]
    out = payment_analytics(state, UserRole.ADMIN, MARCH)
    assert out["totalRent"] == 1200.0
    assert out["totalElectricity"] == 80.0
    assert out["totalDeposits"] == 0.0
    assert out["totalRefunds"] == 2400.0
    assert out["netFlow"] == 1200.0 + 80.0 - 2400.0
    assert out["byMode"] == [{"name": "Bank Transfer", "value": 1200.0}]
    assert out["attributionMatrix"] == {"Bank Account": {"Bank Transfer": 1200.0}}
    assert [d["date"] for d in out["timeSeries"]] == ["2026-03-03"]


def test_capital_insights(state):
    state.properties[0] = state.properties[0].model_copy(update={"total_investment": 2000})
    state.payments = [_pay("pay1", "2026-02", 1200), _pay("pay2", "2026-03", 1200)]
    out = capital_insights(state)
    row = out["properties"][0]
    assert row["lifetimeRevenue"] == 2400.0
    assert row["profit"] == 400.0
    assert row["roi"] == 120.0
    assert row["isBreakeven"] is True
    assert out["portfolio"]["avgRoi"] == 120.0


def test_capital_insights_without_investment(state):
    row = capital_insights(state)["properties"][0]
    assert row["roi"] == 0.0
    assert row["isBreakeven"] is False
