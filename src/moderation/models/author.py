"""Author identity model.

Author is the identity under which a change is written to the document
store.  Authorization lives outside the moderation core; Author only
carries the set of rights the permission system granted.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field


def is_ip_address(name: str) -> bool:
    """True if *name* is a literal IPv4/IPv6 address (anonymous author)."""
    try:
        ipaddress.ip_address(name)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class Author:
    """A writer of changes.

    Anonymous authors are identified by their IP address.

    Attributes:
        name: User name, or IP address for anonymous authors.
        rights: Rights granted by the permission system (e.g. "edit",
            "bot", "minoredit").
        blocked: Whether the author is blocked from editing.
    """

    name: str
    rights: frozenset[str] = field(default_factory=frozenset)
    blocked: bool = False

    @property
    def is_anonymous(self) -> bool:
        return is_ip_address(self.name)

    def is_allowed(self, right: str) -> bool:
        return right in self.rights

    def __str__(self) -> str:
        return self.name
