"""Plan badge shown next to a project's name."""

from __future__ import annotations

import html
from dataclasses import dataclass
from enum import Enum


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class BadgeVariant(str, Enum):
    VIOLET = "violet"
    BLUE = "blue"
    BLACK = "black"


_VARIANTS: dict[Plan, BadgeVariant] = {
    Plan.ENTERPRISE: BadgeVariant.VIOLET,
    Plan.PRO: BadgeVariant.BLUE,
}


def badge_variant(plan: str) -> BadgeVariant:
    """enterprise → violet, pro → blue, anything else (free, unknown) → black."""
    try:
        return _VARIANTS.get(Plan(plan), BadgeVariant.BLACK)
    except ValueError:
        return BadgeVariant.BLACK


@dataclass(frozen=True, slots=True)
class PlanBadge:
    plan: str

    @property
    def variant(self) -> BadgeVariant:
        return badge_variant(self.plan)

    def render(self) -> str:
        return (
            f'<span class="badge badge-{self.variant.value}">'
            f"{html.escape(self.plan)}</span>"
        )
