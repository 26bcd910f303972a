"""Document store domain models.

RevisionInfo is the SDK-facing snapshot of a stored revision.
RequestOrigin describes where a write came from (used for tracking rows).
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class RequestOrigin:
    """Network origin of a write request."""

    ip: str = "127.0.0.1"
    xff: Optional[str] = None
    user_agent: Optional[str] = None


class RevisionInfo(BaseModel):
    """A stored revision of a document.

    Not an ORM model -- used for data transfer only.
    """

    rev_id: int
    document: str
    parent_id: Optional[int] = None
    text: str
    comment: str = ""
    author_name: str
    timestamp: datetime
    minor: bool = False
    bot: bool = False
    tags: list[str] = []

    def __str__(self) -> str:
        return f"r{self.rev_id} {self.document} by {self.author_name}"


def ip_to_hex(ip: str | None) -> str | None:
    """Hexadecimal form of an IP address, used for range lookups.

    IPv4 gives 8 uppercase hex digits, IPv6 gives ``"v6-"`` plus 32.
    Returns None for None or an unparseable address.
    """
    if not ip:
        return None
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return None
    if addr.version == 4:
        return f"{int(addr):08X}"
    return f"v6-{int(addr):032X}"
