"""
Local participant identity.
"""

import logging

from .binding.binder import CapabilityBinder
from .binding.catalog import GET_LOCAL_ID
from .binding.identifiers import ZERO_ID
from .errors import CoopHostError

logger = logging.getLogger(__name__)


class IdentityCache:
    """
    One-shot, then memoized, lookup of the local platform identifier.

    A failed lookup returns ZERO_ID and is retried on the next call, so an
    identity that becomes available late is still picked up. Once resolved the
    underlying operation is never invoked again.
    """

    def __init__(self, binder: CapabilityBinder):
        self.binder = binder
        self._cached: int = ZERO_ID
        self._warned = False

    @property
    def resolved(self) -> bool:
        return self._cached != ZERO_ID

    def get_local_identifier(self) -> int:
        """Get the local identifier, or ZERO_ID if it cannot be resolved yet."""
        if self._cached != ZERO_ID:
            return self._cached

        try:
            local_id = self.binder.invoke(GET_LOCAL_ID)
        except CoopHostError as e:
            if not self._warned:
                logger.warning(f"Local identity unavailable: {e}")
                self._warned = True
            return ZERO_ID

        if local_id != ZERO_ID:
            self._cached = local_id
            logger.debug(f"Local identity resolved: {local_id}")
        return local_id
