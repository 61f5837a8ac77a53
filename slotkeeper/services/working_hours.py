"""
Loading and replacing owners' working-hours rules.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping, Optional, Protocol

from ..domain.exceptions import Unauthorized
from ..domain.models import Role, UserProfile, WorkingHoursRule
from ..domain.timezone import resolve_zone

logger = logging.getLogger(__name__)


class RuleStore(Protocol):
    async def get(self, owner_id: str) -> Optional[WorkingHoursRule]:
        """Return the stored rule, if any."""

    async def setdefault(self, rule: WorkingHoursRule) -> WorkingHoursRule:
        """Store ``rule`` unless one exists for the owner; return the stored rule."""

    async def save(self, rule: WorkingHoursRule) -> WorkingHoursRule:
        """Replace the owner's rule."""


class UserDirectory(Protocol):
    async def get(self, user_id: str) -> Optional[UserProfile]:
        """Return the user's profile, if known."""


class WorkingHoursService:
    """
    Hands out WorkingHoursRule values.

    Rules are created lazily with the default template on first access and
    are only ever replaced, never deleted. The rule's zone always follows
    the owner's profile.
    """

    def __init__(self, rules: RuleStore, users: UserDirectory, default_timezone: str = "UTC") -> None:
        resolve_zone(default_timezone)
        self._rules = rules
        self._users = users
        self._default_timezone = default_timezone

    async def get_rule(self, owner_id: str) -> WorkingHoursRule:
        timezone = await self._timezone_for(owner_id)
        rule = await self._rules.get(owner_id)

        if rule is None:
            rule = await self._rules.setdefault(WorkingHoursRule.default(owner_id, timezone))
            logger.info("Created default working hours for %s (%s)", owner_id, timezone)

        if rule.timezone != timezone:
            rule = replace(rule, timezone=timezone)

        return rule

    async def update_rule(
        self,
        owner_id: str,
        acting_user_id: str,
        buffer_minutes: Optional[int] = None,
        weekly_template: Optional[Mapping] = None,
    ) -> WorkingHoursRule:
        """
        Replace the owner's rule. Only the owner or an admin may do this.

        Raises:
            Unauthorized: If the acting user is neither owner nor admin
            ValueError: If the new template or buffer is invalid
        """
        if acting_user_id != owner_id:
            actor = await self._users.get(acting_user_id)
            if actor is None or actor.role != Role.ADMIN:
                raise Unauthorized(f"{acting_user_id} may not change working hours of {owner_id}")

        current = await self.get_rule(owner_id)
        updated = current.with_changes(buffer_minutes=buffer_minutes, weekly_template=weekly_template)
        saved = await self._rules.save(updated)

        logger.info("Working hours of %s updated by %s", owner_id, acting_user_id)
        return saved

    async def _timezone_for(self, user_id: str) -> str:
        profile = await self._users.get(user_id)
        timezone = profile.timezone if profile else self._default_timezone
        resolve_zone(timezone)
        return timezone
