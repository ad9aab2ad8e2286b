"""
Error kinds for coophost.

Every failure the core can report derives from CoopHostError. None of them is
fatal: the worst outcome is a feature that stays unavailable.
"""

from typing import List, Optional


class CoopHostError(Exception):
    """Base exception for coophost errors."""

    def __init__(self, message: str, code: str = "COOPHOST_ERROR", retryable: bool = False):
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class BindingUnresolved(CoopHostError):
    """No candidate call shape for an operation could be bound or invoked."""

    def __init__(self, operation: str, reasons: Optional[List[str]] = None):
        self.operation = operation
        self.reasons = list(reasons or [])
        detail = "; ".join(self.reasons) if self.reasons else "no candidate shapes"
        super().__init__(
            f"No working call shape for '{operation}': {detail}",
            code="BINDING_UNRESOLVED",
            retryable=False
        )


class UnrecognizedIdentifierShape(CoopHostError):
    """A returned value could not be normalized into a 64-bit identifier."""

    def __init__(self, raw: object):
        self.raw = raw
        super().__init__(
            f"Cannot extract identifier from {type(raw).__name__}: {raw!r}",
            code="UNRECOGNIZED_IDENTIFIER",
            retryable=False
        )


class OperationFailed(CoopHostError):
    """A platform call executed but reported failure."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message, code="OPERATION_FAILED", retryable=True)


class NotReady(CoopHostError):
    """Called before the required prior state exists."""

    def __init__(self, message: str):
        super().__init__(message, code="NOT_READY", retryable=True)
