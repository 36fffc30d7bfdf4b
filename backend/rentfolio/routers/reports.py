# backend/rentfolio/routers/reports.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import Principal, get_principal, get_store, require_admin
from ..domain.reporting import (
    Period,
    capital_insights,
    collection_stats,
    dashboard_summary,
    payment_analytics,
    property_summary,
    rent_roll,
)
from ..schemas import PaymentType
from ..services.store import RentalStore

router = APIRouter(prefix="/reports", tags=["reports"])


def period_params(
    period: str = Query(default="monthly", description="monthly|annual|custom"),
    month: Optional[str] = Query(default=None, description="YYYY-MM"),
    year: Optional[str] = Query(default=None, description="YYYY"),
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
) -> Period:
    return Period.build(period, month=month, year=year, start=start, end=end)


@router.get("/rent-roll", response_model=list[dict])
def get_rent_roll(
    search: str = Query(default=""),
    property_id: Optional[str] = Query(default=None),
    period: Period = Depends(period_params),
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    return rent_roll(store.state, p.role, period, search=search, property_id=property_id)


@router.get("/collection", response_model=dict)
def get_collection(
    period: Period = Depends(period_params),
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    return collection_stats(store.state, p.role, period)


@router.get("/dashboard", response_model=dict)
def get_dashboard(store: RentalStore = Depends(get_store), p: Principal = Depends(get_principal)):
    out = dashboard_summary(store.state, p.role)
    out["properties"] = property_summary(store.state, p.role)
    return out


@router.get("/analytics", response_model=dict)
def get_analytics(
    modality: PaymentType = Query(default=PaymentType.RENT),
    period: Period = Depends(period_params),
    store: RentalStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    return payment_analytics(store.state, p.role, period, modality)


@router.get("/capital", response_model=dict)
def get_capital(store: RentalStore = Depends(get_store), p: Principal = Depends(require_admin)):
    return capital_insights(store.state)
