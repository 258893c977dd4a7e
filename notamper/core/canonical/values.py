from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union

from notamper.core.errors import CyclicReferenceError, EncodingError, InputShapeError

from .scalars import format_number


class ValueKind(Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAP = "map"


@dataclass(frozen=True, slots=True)
class CanonicalNull:
    kind = ValueKind.NULL


@dataclass(frozen=True, slots=True)
class CanonicalBool:
    value: bool
    kind = ValueKind.BOOLEAN


@dataclass(frozen=True, slots=True)
class CanonicalNumber:
    """A finite number. Integers stay exact; floats are finite by construction."""

    value: Union[int, float]
    kind = ValueKind.NUMBER


@dataclass(frozen=True, slots=True)
class CanonicalString:
    value: str
    kind = ValueKind.STRING


@dataclass(frozen=True, slots=True, eq=False)
class CanonicalSequence:
    """Sequence node.

    Items keep their input order here; the canonical element order is fixed by
    the encoder, because composite elements can only be ordered by their
    encodings.
    """

    items: Tuple["CanonicalValue", ...]
    kind = ValueKind.SEQUENCE


@dataclass(frozen=True, slots=True, eq=False)
class CanonicalMap:
    """Map node with unique keys stored in byte-wise sorted order.

    Entries are re-sorted on construction, so a hand-built map encodes the
    same as one built by to_canonical_value.

    Raises:
      InputShapeError: two entries share a key.
    """

    entries: Tuple[Tuple[str, "CanonicalValue"], ...]
    kind = ValueKind.MAP

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.entries, key=lambda kv: utf8_sort_key(kv[0])))
        for (a, _), (b, _) in zip(ordered, ordered[1:]):
            if a == b:
                raise InputShapeError(f"duplicate map key: {a!r}")
        object.__setattr__(self, "entries", ordered)

    def keys(self) -> List[str]:
        return [k for k, _ in self.entries]


CanonicalValue = Union[
    CanonicalNull, CanonicalBool, CanonicalNumber, CanonicalString, CanonicalSequence, CanonicalMap
]

NULL = CanonicalNull()

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def utf8_sort_key(text: str) -> bytes:
    """Byte-wise sort key for text.

    Raises:
      EncodingError: text contains lone surrogates.
    """

    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"string is not representable as UTF-8: {e.reason}") from e


def _is_container(value: Any) -> bool:
    return isinstance(value, Mapping) or isinstance(value, _SEQUENCE_TYPES)


def scalar_to_canonical(value: Any) -> CanonicalValue:
    """Convert one Python scalar into its canonical node.

    Raises:
      EncodingError: non-finite float or unencodable string.
      InputShapeError: the value has no canonical representation.
    """

    if value is None:
        return NULL
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return CanonicalBool(value)
    if isinstance(value, int):
        return CanonicalNumber(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodingError(f"non-finite number cannot be encoded: {value!r}")
        return CanonicalNumber(value)
    if isinstance(value, str):
        utf8_sort_key(value)
        return CanonicalString(value)
    if isinstance(value, (datetime, date)):
        return CanonicalString(value.isoformat())
    raise InputShapeError(f"unsupported value type: {type(value).__name__}")


@dataclass
class _Frame:
    source: Any
    keys: Optional[List[str]]
    children: List[Any]
    done: List[CanonicalValue]
    cursor: int = 0

    def close(self) -> CanonicalValue:
        if self.keys is None:
            return CanonicalSequence(items=tuple(self.done))
        entries = sorted(zip(self.keys, self.done), key=lambda kv: utf8_sort_key(kv[0]))
        return CanonicalMap(entries=tuple(entries))


def _open_frame(container: Any) -> _Frame:
    if isinstance(container, Mapping):
        keys: List[str] = []
        seen = set()
        for k in container.keys():
            if not isinstance(k, (str, int, float, bool)) and k is not None:
                raise InputShapeError(f"unsupported map key type: {type(k).__name__}")
            name = k if isinstance(k, str) else _key_text(k)
            if name in seen:
                raise InputShapeError(f"duplicate map key: {name!r}")
            seen.add(name)
            keys.append(name)
        children = [container[k] for k in container.keys()]
        return _Frame(source=container, keys=keys, children=children, done=[])
    return _Frame(source=container, keys=None, children=list(container), done=[])


def _key_text(key: Any) -> str:
    # Non-string keys take their literal text, e.g. 1 -> "1", None -> "null".
    if key is None:
        return "null"
    if isinstance(key, bool):
        return "true" if key else "false"
    return format_number(key)


def to_canonical_value(obj: Any) -> CanonicalValue:
    """Build the typed canonical tree for a Python value.

    Traversal is iterative so nesting depth is bounded only by memory.
    Shared (non-cyclic) references are fine; a container that contains itself
    anywhere below raises CyclicReferenceError.
    """

    if not _is_container(obj):
        return scalar_to_canonical(obj)

    stack: List[_Frame] = []
    on_path: set = set()
    result: Optional[CanonicalValue] = None

    stack.append(_open_frame(obj))
    on_path.add(id(obj))

    while stack:
        frame = stack[-1]
        if frame.cursor < len(frame.children):
            child = frame.children[frame.cursor]
            frame.cursor += 1
            if not _is_container(child):
                frame.done.append(scalar_to_canonical(child))
                continue
            if id(child) in on_path:
                raise CyclicReferenceError(
                    f"cyclic reference detected at depth {len(stack)}"
                )
            stack.append(_open_frame(child))
            on_path.add(id(child))
            continue

        stack.pop()
        on_path.discard(id(frame.source))
        node = frame.close()
        if stack:
            stack[-1].done.append(node)
        else:
            result = node

    assert result is not None
    return result
