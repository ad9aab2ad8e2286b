"""
Identifier normalization.

The same logical value (a peer or a session group) comes back from different
native calls as a raw integer, as a wrapper struct, or as text. Everything in
coophost works on the canonical unsigned 64-bit int produced here.
"""

import numbers
from typing import Any, Tuple

from ..errors import UnrecognizedIdentifierShape

# Zero means "unknown" everywhere in coophost
ZERO_ID = 0
MAX_ID = (1 << 64) - 1

# Field names used by the wrapper types of known platform bindings
IDENTIFIER_FIELDS: Tuple[str, ...] = (
    "m_SteamID",
    "SteamID",
    "steamID",
    "value",
    "Value",
    "id",
)


def _from_integral(value: Any, raw: Any) -> int:
    number = int(value)
    if number < 0 or number > MAX_ID:
        raise UnrecognizedIdentifierShape(raw)
    return number


def _from_text(text: str, raw: Any) -> int:
    text = text.strip()
    if not text.isdigit():
        raise UnrecognizedIdentifierShape(raw)
    return _from_integral(int(text), raw)


def normalize_identifier(raw: Any) -> int:
    """
    Convert any known identifier representation to an unsigned 64-bit int.

    Accepted shapes, checked in order:
        - an integer (bool excluded) in the unsigned 64-bit range
        - a decimal string (bytes are decoded as ASCII)
        - a wrapper exposing one of IDENTIFIER_FIELDS, attribute or mapping key
        - a wrapper whose str() is a decimal number

    Raises:
        UnrecognizedIdentifierShape: for anything else
    """
    if raw is None or isinstance(raw, bool):
        raise UnrecognizedIdentifierShape(raw)

    if isinstance(raw, numbers.Integral):
        return _from_integral(raw, raw)

    if isinstance(raw, (bytes, bytearray)):
        try:
            return _from_text(bytes(raw).decode("ascii"), raw)
        except UnicodeDecodeError:
            raise UnrecognizedIdentifierShape(raw) from None

    if isinstance(raw, str):
        return _from_text(raw, raw)

    for name in IDENTIFIER_FIELDS:
        if isinstance(raw, dict):
            if name not in raw:
                continue
            inner = raw[name]
        else:
            inner = getattr(raw, name, None)
            if inner is None:
                continue
        if isinstance(inner, bool) or inner is raw:
            raise UnrecognizedIdentifierShape(raw)
        if isinstance(inner, numbers.Integral):
            return _from_integral(inner, raw)
        if isinstance(inner, str):
            return _from_text(inner, raw)
        raise UnrecognizedIdentifierShape(raw)

    # Last resort: wrappers whose text form is the decimal value
    return _from_text(str(raw), raw)
