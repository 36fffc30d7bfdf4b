from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..schemas import (
    AppConfig,
    Payment,
    Property,
    PropertyRecord,
    PropertyType,
    RecordValue,
    UnitHistory,
    User,
)

# snapshot key -> (attribute, entity class)
COLLECTIONS: dict[str, tuple[str, type]] = {
    "users": ("users", User),
    "propertyTypes": ("property_types", PropertyType),
    "properties": ("properties", Property),
    "records": ("records", PropertyRecord),
    "recordValues": ("record_values", RecordValue),
    "unitHistory": ("unit_history", UnitHistory),
    "payments": ("payments", Payment),
}


@dataclass
class RentalState:
    """Every entity collection the application holds. This is what gets cached and pushed."""

    users: list[User] = field(default_factory=list)
    property_types: list[PropertyType] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    records: list[PropertyRecord] = field(default_factory=list)
    record_values: list[RecordValue] = field(default_factory=list)
    unit_history: list[UnitHistory] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
    config: AppConfig = field(default_factory=AppConfig)

    def to_snapshot(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, (attr, _cls) in COLLECTIONS.items():
            out[key] = [e.dump() for e in getattr(self, attr)]
        out["config"] = self.config.dump()
        return out

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "RentalState":
        state = cls()
        for key, (attr, entity_cls) in COLLECTIONS.items():
            rows = data.get(key) or []
            setattr(state, attr, [entity_cls.model_validate(r) for r in rows])
        if isinstance(data.get("config"), dict):
            state.config = AppConfig.model_validate(data["config"])
        return state

    def copy(self) -> "RentalState":
        return RentalState.from_snapshot(self.to_snapshot())

    def is_empty(self) -> bool:
        return not any(getattr(self, attr) for attr, _ in COLLECTIONS.values())

    # ---- lookups ----

    def find_property(self, property_id: str) -> Property | None:
        return next((p for p in self.properties if p.id == property_id), None)

    def find_property_type(self, type_id: str) -> PropertyType | None:
        return next((t for t in self.property_types if t.id == type_id), None)

    def find_record(self, record_id: str) -> PropertyRecord | None:
        return next((r for r in self.records if r.id == record_id), None)

    def find_user(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def type_for_property(self, property_id: str) -> PropertyType | None:
        prop = self.find_property(property_id)
        return self.find_property_type(prop.property_type_id) if prop else None

    def values_for(self, record_id: str) -> dict[str, str]:
        return {v.column_id: v.value for v in self.record_values if v.record_id == record_id}

    def records_for(self, property_id: str) -> list[PropertyRecord]:
        return [r for r in self.records if r.property_id == property_id]
