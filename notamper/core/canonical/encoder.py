from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .scalars import format_number, quote_string
from .values import (
    CanonicalBool,
    CanonicalMap,
    CanonicalNull,
    CanonicalNumber,
    CanonicalSequence,
    CanonicalString,
    CanonicalValue,
    ValueKind,
    to_canonical_value,
    utf8_sort_key,
)

_COMPOSITE_KINDS = (ValueKind.SEQUENCE, ValueKind.MAP)
_NODE_TYPES = (
    CanonicalNull,
    CanonicalBool,
    CanonicalNumber,
    CanonicalString,
    CanonicalSequence,
    CanonicalMap,
)


def _is_scalar(node: CanonicalValue) -> bool:
    return node.kind not in _COMPOSITE_KINDS


def encode_scalar(node: CanonicalValue) -> str:
    """Encode a scalar node as canonical text."""

    if node.kind is ValueKind.NULL:
        return "null"
    if node.kind is ValueKind.BOOLEAN:
        return "true" if node.value else "false"
    if node.kind is ValueKind.NUMBER:
        return format_number(node.value)
    if node.kind is ValueKind.STRING:
        return quote_string(node.value)
    raise TypeError(f"not a scalar node: {node.kind}")


def scalar_text(node: CanonicalValue) -> str:
    """Stringified form of a scalar used to order scalar-only sequences.

    Strings sort by their raw text; other scalars by their literal token.
    """

    if node.kind is ValueKind.STRING:
        return node.value
    return encode_scalar(node)


def _order_sequence(items: List[CanonicalValue], encoded: List[str]) -> List[str]:
    if all(_is_scalar(n) for n in items):
        # Ties on raw text ("1" vs 1) fall back to the encoding so the
        # result never depends on input order.
        pairs = sorted(
            zip(items, encoded),
            key=lambda p: (utf8_sort_key(scalar_text(p[0])), utf8_sort_key(p[1])),
        )
        return [enc for _, enc in pairs]
    return sorted(encoded, key=utf8_sort_key)


@dataclass
class _EncodeFrame:
    node: CanonicalValue
    children: List[CanonicalValue]
    encoded: List[str] = field(default_factory=list)
    cursor: int = 0

    def close(self) -> str:
        if self.node.kind is ValueKind.MAP:
            parts = [
                f"{quote_string(k)}:{enc}" for k, enc in zip(self.node.keys(), self.encoded)
            ]
            return "{" + ",".join(parts) + "}"
        return "[" + ",".join(_order_sequence(self.children, self.encoded)) + "]"


def _open(node: CanonicalValue) -> _EncodeFrame:
    if node.kind is ValueKind.MAP:
        return _EncodeFrame(node=node, children=[v for _, v in node.entries])
    return _EncodeFrame(node=node, children=list(node.items))


def encode_canonical(node: CanonicalValue) -> str:
    """Encode a canonical tree into its canonical text.

    Post-order and iterative: every child is encoded before its parent, and
    sequences are ordered from their children's encodings.
    """

    if _is_scalar(node):
        return encode_scalar(node)

    stack: List[_EncodeFrame] = [_open(node)]
    result: Optional[str] = None
    while stack:
        frame = stack[-1]
        if frame.cursor < len(frame.children):
            child = frame.children[frame.cursor]
            frame.cursor += 1
            if _is_scalar(child):
                frame.encoded.append(encode_scalar(child))
            else:
                stack.append(_open(child))
            continue

        stack.pop()
        text = frame.close()
        if stack:
            stack[-1].encoded.append(text)
        else:
            result = text

    assert result is not None
    return result


def canonical_encode(obj: Any) -> str:
    """Canonical text for a Python value or an already-built canonical tree."""

    node = obj if isinstance(obj, _NODE_TYPES) else to_canonical_value(obj)
    return encode_canonical(node)


def canonical_bytes(obj: Any) -> bytes:
    """Canonical UTF-8 bytes for a Python value."""

    return canonical_encode(obj).encode("utf-8")
