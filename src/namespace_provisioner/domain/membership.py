"""
namespace_provisioner.domain.membership

Membership differencer.

Responsibilities:
- Compute added/removed users between two observed member sets.
"""

from __future__ import annotations

from collections.abc import Iterable

from namespace_provisioner.domain.models import MembershipDelta


def diff_members(old: Iterable[str] | None, new: Iterable[str]) -> MembershipDelta:
    """
    Pure set difference of two memberships.

    `old=None` means the group is observed for the first time: every current member
    is added and nothing is removed. Duplicates collapse to one member.
    """

    new_set = frozenset(new)
    if old is None:
        return MembershipDelta(added=new_set, removed=frozenset())

    old_set = frozenset(old)
    return MembershipDelta(added=new_set - old_set, removed=old_set - new_set)
