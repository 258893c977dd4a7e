from __future__ import annotations

import base64
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


def to_jsonable(obj: Any) -> Any:
    """
    Convert CLI results (dataclasses, enums, dates, bytes) to JSON-serializable
    equivalents for printing.

    This is for display only; digests are always computed from the canonical
    encoding, never from this output.

    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, Enum):
        return obj.value

    # datetime/date -> ISO 8601
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()

    if isinstance(obj, Path):
        return str(obj)

    # canonical bytes are UTF-8 text; anything else is base64
    if isinstance(obj, (bytes, bytearray)):
        try:
            return bytes(obj).decode("utf-8")
        except UnicodeDecodeError:
            return {"__bytes_b64__": base64.b64encode(bytes(obj)).decode("ascii")}

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted((to_jsonable(x) for x in obj), key=str)

    # fallback: string representation
    return str(obj)
