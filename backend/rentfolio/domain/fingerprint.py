from __future__ import annotations

import hashlib
import json
from typing import Any

from .state import RentalState


def fingerprint(*parts: Any) -> str:
    """
    Stable, deterministic SHA-256 over JSON-serializable content.
    Key order and whitespace never change the result.
    """
    blob = json.dumps(parts, sort_keys=True, default=str, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()


def state_hash(state: RentalState) -> str:
    """Content hash of every slice that is pushed to the spreadsheet."""
    return fingerprint(state.to_snapshot())
