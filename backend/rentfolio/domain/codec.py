from __future__ import annotations

import base64
import binascii
import json
from typing import Any


class CacheDecodeError(ValueError):
    pass


def encode_payload(data: Any) -> str:
    """
    JSON -> UTF-8 -> Base64.
    Obfuscation only: anyone holding the value can decode it.
    """
    raw = json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_payload(blob: str) -> Any:
    try:
        raw = base64.b64decode(blob.encode("ascii"), validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise CacheDecodeError(f"cached payload is not valid base64 json: {e}") from e
