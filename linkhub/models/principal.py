from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a validated JWT.

    user_id is the token subject; project memberships are keyed on it.
    """

    user_id: str
    roles: frozenset[str]
