"""
Roster Schema Definitions

This module defines the roster entry returned by the bridge and the
persisted roster row it is shaped from.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from .base import BaseRecord

UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class RosterItem(BaseRecord):
    """
    One contact entry. Identity key is `jid`.

    Attributes:
        jid: Bare JID of the contact
        name: Display name
        group: Roster group ("" when ungrouped)
        subscription: Subscription state (none, to, from, both)
        presence: Last known presence; replaced by presence events
    """

    jid: str
    name: str
    group: str = ""
    subscription: str = "none"
    presence: str = UNAVAILABLE

    def with_presence(self, presence: str) -> "RosterItem":
        """Return a copy carrying a new presence value."""
        return replace(self, presence=presence)


@dataclass
class RosterRow(BaseRecord):
    """
    Persisted roster row.

    Attributes:
        jid: Bare JID of the contact
        name: Optional display name
        subscription: Subscription state
        groups: Optional comma-separated group names
    """

    jid: str
    subscription: str = "none"
    name: Optional[str] = None
    groups: Optional[str] = None

    @property
    def group_list(self) -> List[str]:
        """Group names in storage order."""
        if not self.groups:
            return []
        return [group.strip() for group in self.groups.split(",") if group.strip()]

    def to_roster_item(self, presence: str = UNAVAILABLE) -> RosterItem:
        """
        Shape this row into a roster entry.

        Args:
            presence: Current presence of the contact

        Returns:
            RosterItem with the first group and a JID fallback for the name
        """
        groups = self.group_list
        return RosterItem(
            jid=self.jid,
            name=self.name or self.jid,
            group=groups[0] if groups else "",
            subscription=self.subscription,
            presence=presence,
        )
