# backend/rentfolio/seed/demo.py
from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from ..domain.clock import to_iso, utc_now, utc_now_iso
from ..domain.state import RentalState
from ..domain.unit_history import start_interval
from ..schemas import (
    ColumnDefinition,
    ColumnType,
    Property,
    PropertyRecord,
    PropertyType,
    RecordValue,
    User,
    UserRole,
)

# (id, username, name, role, password)
DEMO_USERS = (
    ("u-admin", "admin", "Chief Administrator", UserRole.ADMIN, "admin123"),
    ("u-manager", "manager", "Property Manager", UserRole.MANAGER, "manager123"),
    ("u-viewer", "viewer", "Guest Auditor", UserRole.VIEWER, "viewer123"),
)


def demo_property_type() -> PropertyType:
    return PropertyType(
        id="pt_res",
        name="Residential Standard",
        default_due_date_day=5,
        columns=[
            ColumnDefinition(id="c1", name="Unit Name", type=ColumnType.TEXT, required=True, order=0),
            ColumnDefinition(id="c2", name="Tenant Name", type=ColumnType.TEXT, required=True, order=1),
            ColumnDefinition(
                id="c3", name="Monthly Rent", type=ColumnType.CURRENCY, required=True, is_rent_calculatable=True, order=2
            ),
            ColumnDefinition(
                id="c4",
                name="Security Deposit",
                type=ColumnType.SECURITY_DEPOSIT,
                required=True,
                is_security_deposit=True,
                order=3,
            ),
            ColumnDefinition(id="c5", name="Rent Date", type=ColumnType.DATE, required=True, order=4),
            ColumnDefinition(
                id="c6", name="Status", type=ColumnType.DROPDOWN, required=True, options=["Active", "Vacant"], order=5
            ),
        ],
    )


def demo_state(hasher: Callable[[str], str], *, today: Optional[date] = None) -> RentalState:
    """One property type, one property, one occupied unit, and an admin/manager/viewer trio."""
    today = today or date.today()
    now = utc_now_iso()

    state = RentalState()
    state.users = [
        User(id=uid, username=username, name=name, role=role, password_hash=hasher(pw), created_at=now)
        for uid, username, name, role, pw in DEMO_USERS
    ]
    state.property_types = [demo_property_type()]
    state.properties = [
        Property(
            id="p1",
            name="Skyline Heights",
            address="123 Pine St, Downtown",
            property_type_id="pt_res",
            created_at=now,
            is_visible_to_manager=True,
        )
    ]
    state.records = [PropertyRecord(id="r1", property_id="p1", created_at=now, updated_at=now)]

    values = {"c1": "101", "c2": "John Doe", "c3": "1200", "c4": "2400", "c5": today.isoformat(), "c6": "Active"}
    state.record_values = [
        RecordValue(id=f"v{i}", record_id="r1", column_id=col, value=val)
        for i, (col, val) in enumerate(values.items(), start=1)
    ]
    state.unit_history = [start_interval(history_id="h1", record_id="r1", values=values, effective_from=utc_now())]
    return state


def bootstrap_admin(hasher: Callable[[str], str], password: str) -> User:
    return User(
        id="u-admin",
        username="admin",
        name="Chief Administrator",
        role=UserRole.ADMIN,
        password_hash=hasher(password),
        created_at=to_iso(utc_now()),
    )
