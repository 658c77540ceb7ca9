"""Project slug rules.

Rules run in a fixed order and the first failure wins:

  1. length      : at most 48 characters
  2. shape       : ASCII letters, digits and hyphens only
  3. reservation : not in the reserved-key store, not a built-in redirect

1 and 2 are pure and run first, so an obviously bad slug is rejected
without the reserved-key store ever being queried.
"""

from __future__ import annotations

import re

from linkhub.services.reserved_keys import ReservedKeys

MAX_SLUG_LENGTH = 48

VALID_SLUG_RE = re.compile(r"[a-zA-Z0-9\-]+")

SLUG_TOO_LONG = "Slug must be less than 48 characters"
SLUG_INVALID = "Invalid slug"
SLUG_RESERVED = "Cannot use reserved slugs"
SLUG_TAKEN = "Slug is already in use."

# Paths on the short-link domain that already redirect somewhere; a project
# slug equal to one of these would be unreachable.
DEFAULT_REDIRECTS: dict[str, str] = {
    "home": "https://linkhub.sh",
    "signin": "https://app.linkhub.sh/login",
    "login": "https://app.linkhub.sh/login",
    "register": "https://app.linkhub.sh/register",
    "signup": "https://app.linkhub.sh/register",
    "app": "https://app.linkhub.sh",
    "dashboard": "https://app.linkhub.sh",
    "links": "https://app.linkhub.sh/links",
    "settings": "https://app.linkhub.sh/settings",
    "welcome": "https://app.linkhub.sh/welcome",
    "discord": "https://discord.gg/linkhub",
    "docs": "https://linkhub.sh/docs",
    "api": "https://linkhub.sh/docs/api",
    "pricing": "https://linkhub.sh/pricing",
    "blog": "https://linkhub.sh/blog",
    "help": "https://linkhub.sh/help",
    "support": "https://linkhub.sh/help",
}


async def validate_slug(slug: str, reserved_keys: ReservedKeys) -> str | None:
    """Return None if the slug may be used, else the first rule's message."""
    if len(slug) > MAX_SLUG_LENGTH:
        return SLUG_TOO_LONG
    if not VALID_SLUG_RE.fullmatch(slug):
        return SLUG_INVALID
    if slug in DEFAULT_REDIRECTS or await reserved_keys.is_reserved(slug):
        return SLUG_RESERVED
    return None
