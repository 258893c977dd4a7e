"""Scalar text encoding for the canonical form.

Numbers use the ECMAScript Number-to-String layout over the shortest
round-tripping digits, so that a JavaScript verifier and this implementation
produce the same text for the same double. Integral floats therefore carry no
fraction (30.0 -> "30") and -0.0 collapses to "0".

Python ints are written exactly. Integers beyond 2**53 have no exact double
and may differ from a JavaScript producer; callers that need cross-language
parity for such values should pass them as strings.
"""

from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Tuple, Union

from notamper.core.errors import EncodingError


def _shortest_digits(value: float) -> Tuple[str, int]:
    """Return (digits, exponent) with value == int(digits) * 10**exponent."""

    t = Decimal(repr(value)).as_tuple()
    digits = list(t.digits)
    exponent = int(t.exponent)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    return "".join(str(d) for d in digits), exponent


def format_number(value: Union[int, float]) -> str:
    """Render a finite number in its canonical text form."""

    if isinstance(value, bool):
        raise EncodingError("booleans are not numbers")
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError as e:
            raise EncodingError(f"integer too large to encode: {e}") from e
    if not math.isfinite(value):
        raise EncodingError(f"non-finite number cannot be encoded: {value!r}")
    if value == 0:
        return "0"

    digits, exponent = _shortest_digits(abs(value))
    sign = "-" if value < 0 else ""
    k = len(digits)
    n = k + exponent

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
        body = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + body


def quote_string(text: str) -> str:
    """JSON-quote a string: escapes quote, backslash and control characters only."""

    return json.dumps(text, ensure_ascii=False)
