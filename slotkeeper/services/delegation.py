"""
Delegation lookups: may an assistant act on behalf of an owner?
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..domain.exceptions import Unauthorized
from ..domain.models import DelegationGrant, DelegationPermissions

logger = logging.getLogger(__name__)


class DelegationStore(Protocol):
    async def lookup(self, delegate_id: str, vp_owner_id: str) -> Optional[DelegationGrant]:
        """Return the grant from ``vp_owner_id`` to ``delegate_id``, if any."""


class DelegationAuthorizer:
    """Answers permission questions from stored grants; owns no state."""

    def __init__(self, store: DelegationStore) -> None:
        self._store = store

    async def authorize(self, delegate_id: str, vp_owner_id: str, permission: str) -> bool:
        """True iff an active grant exists with ``permission`` set."""
        if permission not in DelegationPermissions.names():
            raise ValueError(f"Unknown delegation permission: {permission}")

        grant = await self._store.lookup(delegate_id, vp_owner_id)
        if grant is None or not grant.active:
            return False

        return getattr(grant.permissions, permission) is True

    async def require(self, delegate_id: Optional[str], vp_owner_id: str, permission: str) -> None:
        """
        Raises:
            Unauthorized: If the delegate lacks ``permission`` for the owner
        """
        if delegate_id is None or not await self.authorize(delegate_id, vp_owner_id, permission):
            logger.info("Denied %s for %s on behalf of %s", permission, delegate_id, vp_owner_id)
            raise Unauthorized(f"{delegate_id or 'Anonymous user'} may not {permission[4:]} for {vp_owner_id}")
