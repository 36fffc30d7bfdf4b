# backend/rentfolio/schemas.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


# -------------------- Enums --------------------

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    VIEWER = "VIEWER"


class ColumnType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    DROPDOWN = "dropdown"
    CURRENCY = "currency"
    RENT_DUE_DAY = "rent_due_day"
    SECURITY_DEPOSIT = "security_deposit"
    OCCUPANCY_STATUS = "occupancy_status"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


class PaymentType(str, Enum):
    RENT = "RENT"
    DEPOSIT = "DEPOSIT"
    ELECTRICITY = "ELECTRICITY"


ONE_TIME_MONTH = "ONE_TIME"


# -------------------- Entities --------------------
# Wire names are camelCase (local cache, spreadsheet headers, API bodies).

class Entity(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class User(Entity):
    id: str
    username: str
    name: str
    role: UserRole
    password_hash: str
    created_at: str


class ColumnDefinition(Entity):
    id: str
    name: str
    type: ColumnType = ColumnType.TEXT
    required: bool = False
    is_rent_calculatable: bool = False
    is_security_deposit: bool = False
    options: Optional[List[str]] = None
    order: int = 0


class PropertyType(Entity):
    id: str
    name: str
    columns: List[ColumnDefinition] = Field(default_factory=list)
    default_due_date_day: int = 5

    def ordered_columns(self) -> list[ColumnDefinition]:
        return sorted(self.columns, key=lambda c: c.order)


class Property(Entity):
    id: str
    name: str
    property_type_id: str
    address: str = ""
    created_at: str
    is_visible_to_manager: bool = True
    total_investment: float = 0.0


class PropertyRecord(Entity):
    id: str
    property_id: str
    created_at: str
    updated_at: str


class RecordValue(Entity):
    id: str
    record_id: str
    column_id: str
    value: str = ""


class UnitHistory(Entity):
    id: str
    record_id: str
    values: dict[str, str] = Field(default_factory=dict)
    effective_from: str
    effective_to: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.effective_to is None


class Payment(Entity):
    id: str
    record_id: str
    month: str
    amount: float
    status: PaymentStatus = PaymentStatus.PAID
    type: PaymentType = PaymentType.RENT
    due_date: str = "N/A"
    paid_at: Optional[str] = None
    paid_to: Optional[str] = None
    payment_mode: Optional[str] = None
    is_refunded: bool = False
    refunded_at: Optional[str] = None


DEFAULT_PAID_TO_OPTIONS = ["Company Account", "Bank Account", "Petty Cash", "Owner Direct"]
DEFAULT_PAYMENT_MODE_OPTIONS = ["Bank Transfer", "Cash", "Check", "UPI/QR", "Credit Card"]


class AppConfig(Entity):
    paid_to_options: List[str] = Field(default_factory=lambda: list(DEFAULT_PAID_TO_OPTIONS))
    payment_mode_options: List[str] = Field(default_factory=lambda: list(DEFAULT_PAYMENT_MODE_OPTIONS))


# -------------------- Auth --------------------

class LoginIn(BaseModel):
    username: str
    password: str


class PrincipalOut(BaseModel):
    user_id: str
    username: str
    name: str
    role: UserRole


class LoginOut(PrincipalOut):
    access_token: str
    token_type: str = "bearer"


# -------------------- Users --------------------

class UserCreate(BaseModel):
    name: str
    username: str
    password: str = Field(min_length=1)
    role: UserRole = UserRole.MANAGER


class UserOut(BaseModel):
    id: str
    username: str
    name: str
    role: UserRole
    created_at: str

    model_config = ConfigDict(from_attributes=True)


# -------------------- Property types --------------------

class ColumnDefinitionIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    name: str
    type: ColumnType = ColumnType.TEXT
    required: bool = False
    is_rent_calculatable: bool = False
    options: Optional[List[str]] = None


class PropertyTypeIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    columns: List[ColumnDefinitionIn]
    default_due_date_day: int = Field(default=5, ge=1, le=31)


# -------------------- Properties / units --------------------

class PropertyIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    property_type_id: str
    address: str = ""


class PropertyPatch(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    address: Optional[str] = None
    total_investment: Optional[float] = Field(default=None, ge=0)


class RecordIn(BaseModel):
    """Unit values keyed by column id."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    values: dict[str, str]
    effective_from: Optional[datetime] = None


# -------------------- Payments / config --------------------

class PaymentToggleIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    record_id: str
    month: str
    amount: float = Field(ge=0)
    due_date: str = "N/A"
    type: PaymentType = PaymentType.RENT
    paid_to: Optional[str] = None
    payment_mode: Optional[str] = None


class ConfigPatch(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    paid_to_options: Optional[List[str]] = None
    payment_mode_options: Optional[List[str]] = None


class ConfigOptionIn(BaseModel):
    option: str


# -------------------- Sync / audit --------------------

class SyncStatusOut(BaseModel):
    status: str
    configured: bool
    hydrated: bool
    in_flight: bool
    timer_pending: bool
    last_error: Optional[str] = None
    last_synced_at: Optional[str] = None
    last_pushed_hash: Optional[str] = None
    tombstones: int = 0


class AuditEventOut(BaseModel):
    id: int
    actor_user_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: str
    before_json: Optional[str] = None
    after_json: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
