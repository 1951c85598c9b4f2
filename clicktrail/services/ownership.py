"""
Link ownership rules.

A link is either Owned by a principal or Unowned (created anonymously).
Access decisions are a pure function of the link's ownership, the
requesting principal and the configured policy for unowned links, so
every call site shares exactly one rule.
"""

from dataclasses import dataclass
from typing import Optional, Union

from clicktrail.core.exceptions import ForbiddenError
from clicktrail.core.setting import AnonymousLinkPolicy
from clicktrail.db.models import Link


@dataclass(frozen=True)
class Owned:
    principal_id: str


@dataclass(frozen=True)
class Unowned:
    pass


Ownership = Union[Owned, Unowned]


def ownership_of(link: Link) -> Ownership:
    if link.owner_id:
        return Owned(link.owner_id)
    return Unowned()


def is_allowed(
    ownership: Ownership,
    principal_id: Optional[str],
    policy: AnonymousLinkPolicy = AnonymousLinkPolicy.any_authenticated,
) -> bool:
    """
    Decide whether ``principal_id`` may act on a link.

    No principal means the caller did not ask for an ownership check (for
    example internal jobs); the check is only applied when one is given.
    """
    if principal_id is None:
        return True
    if isinstance(ownership, Owned):
        return ownership.principal_id == principal_id
    return policy == AnonymousLinkPolicy.any_authenticated


def ensure_allowed(
    link: Link,
    principal_id: Optional[str],
    policy: AnonymousLinkPolicy = AnonymousLinkPolicy.any_authenticated,
) -> None:
    """
    Raises:
        ForbiddenError: If the principal may not act on the link
    """
    if not is_allowed(ownership_of(link), principal_id, policy):
        raise ForbiddenError()
