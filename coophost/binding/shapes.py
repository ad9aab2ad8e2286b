"""
Call-shape descriptors and return decoders.

A CallShape describes one concrete way to call a native platform operation:
where it lives on the native object, how many positional arguments it takes,
how the logical arguments are arranged for it and how its return value is
decoded back into coophost's representation.
"""

import numbers
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .identifiers import normalize_identifier


def _passthrough(*args: Any) -> Tuple[Any, ...]:
    return args


@dataclass(frozen=True)
class CallShape:
    """One candidate shape for a native operation."""
    path: str  # dotted attribute path on the native object
    arity: int  # positional arguments the native callable accepts
    arrange: Callable[..., Tuple[Any, ...]] = _passthrough
    decode: Optional[Callable[[Any], Any]] = None
    wrap_ids: Tuple[int, ...] = ()  # logical arg positions passed through the id factory
    label: str = ""

    def describe(self) -> str:
        if self.label:
            return self.label
        wrapped = " wrapped" if self.wrap_ids else ""
        return f"{self.path}/{self.arity}{wrapped}"


@dataclass
class CapabilityBinding:
    """Resolution state for one named operation."""
    operation: str
    shapes: Tuple[CallShape, ...]
    working_index: Optional[int] = None
    probes: int = 0
    target: Optional[Callable[..., Any]] = field(default=None, repr=False)

    @property
    def resolved(self) -> bool:
        return self.working_index is not None

    @property
    def working_shape(self) -> Optional[CallShape]:
        if self.working_index is None:
            return None
        return self.shapes[self.working_index]


# ---------------------------------------------------------------------------
# Return decoders
# ---------------------------------------------------------------------------

def decode_bool(result: Any) -> bool:
    return bool(result)


def decode_issued(result: Any) -> bool:
    """Calls that hand back a request handle succeed when the handle is set."""
    return result is not None and result is not False and result != 0


def decode_text(result: Any) -> str:
    return "" if result is None else str(result)


def decode_count(result: Any) -> int:
    return 0 if result is None else int(result)


def decode_list(result: Any) -> List[Any]:
    return [] if result is None else list(result)


def decode_available(result: Any) -> int:
    """Size of the next pending packet, from `size` or an `(available, size)` pair."""
    if isinstance(result, tuple):
        available, size = result
        return int(size) if available else 0
    return 0 if result is None else int(result)


@dataclass(frozen=True)
class ReceivedPacket:
    """A packet read from the platform's P2P channel."""
    sender: int
    data: bytes


def decode_packet(result: Any) -> Optional[ReceivedPacket]:
    """
    Decode a packet read.

    Accepts `(ok, data, sender)`, `(ok, data, size, sender)` as returned for
    out-parameter calls, or a plain `(data, sender)` pair. Returns None when
    nothing was read.
    """
    if not result:
        return None
    if len(result) in (3, 4) and isinstance(result[0], bool):
        if not result[0]:
            return None
        data, sender = result[1], result[-1]
        if len(result) == 4:
            data = data[:int(result[2])]
    elif len(result) == 2:
        data, sender = result
    else:
        raise ValueError(f"unexpected packet tuple of length {len(result)}")

    sender_id = normalize_identifier(sender)
    if sender_id == 0:
        return None
    return ReceivedPacket(sender_id, bytes(data))


APP_ID_FIELDS = ("m_gameID", "game_id", "app_id", "appid")


def decode_app_id(result: Any) -> int:
    """Extract the played app id from a game-info value (0 when not in game)."""
    if result is None or result is False:
        return 0
    if isinstance(result, tuple) and len(result) == 2:
        # (in_game, info) as returned for out-parameter calls
        in_game, result = result
        if not in_game:
            return 0
    if isinstance(result, numbers.Integral) and not isinstance(result, bool):
        return int(result)
    for name in APP_ID_FIELDS:
        value = result.get(name) if isinstance(result, dict) else getattr(result, name, None)
        if value is not None:
            return decode_app_id(value)
    return normalize_identifier(result)


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------

def id_variants(
    path: str,
    arity: int,
    id_positions: Tuple[int, ...],
    arrange: Callable[..., Tuple[Any, ...]] = _passthrough,
    decode: Optional[Callable[[Any], Any]] = None,
) -> List[CallShape]:
    """Build the raw-integer shape followed by its wrapped-identifier twin."""
    return [
        CallShape(path=path, arity=arity, arrange=arrange, decode=decode),
        CallShape(path=path, arity=arity, arrange=arrange, decode=decode, wrap_ids=id_positions),
    ]


def variants(paths: List[str], arity: int, **kwargs: Any) -> List[CallShape]:
    """Same shape under several attribute paths, in preference order."""
    return [CallShape(path=p, arity=arity, **kwargs) for p in paths]


ShapeCatalog = Dict[str, List[CallShape]]
