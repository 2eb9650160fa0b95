"""Data models for contact resolution."""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass, field, replace

# Card property names understood by the resolver.
PRIMARY_EMAIL = "PrimaryEmail"
SECOND_EMAIL = "SecondEmail"
DISPLAY_NAME = "DisplayName"
FIRST_NAME = "FirstName"
LAST_NAME = "LastName"
NICK_NAME = "NickName"
PHOTO_URI = "PhotoURI"
PREFER_DISPLAY_NAME = "PreferDisplayName"


@dataclass(frozen=True)
class ContactRecord:
    """Enriched contact details for one email address.

    Records are never mutated after construction; the cache hands out
    copies so callers cannot reach the cached instance.
    """

    color: str
    contact_id: str | None = None
    identity_id: str | None = None
    name: str | None = None
    photo_uri: str | None = None

    def clone(self) -> ContactRecord:
        return replace(self)

    def to_dict(self) -> dict:
        """Serialize using the camel-case keys the UI layer consumes."""
        return {
            "color": self.color,
            "contactId": self.contact_id,
            "identityId": self.identity_id,
            "name": self.name,
            "photoURI": self.photo_uri,
        }


@dataclass
class Card:
    """An address-book entry.

    ``properties`` uses the address-book field names (``PrimaryEmail``,
    ``DisplayName``, ...). Missing keys mean the field is not set.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    properties: dict[str, str] = field(default_factory=dict)
    parent_id: str | None = None

    def get(self, name: str) -> str | None:
        """Return a property value, treating empty strings as absent."""
        value = self.properties.get(name)
        return value if value else None

    @property
    def emails(self) -> list[str]:
        return [e for e in (self.get(PRIMARY_EMAIL), self.get(SECOND_EMAIL)) if e]


@dataclass(frozen=True)
class Identity:
    """An outgoing-mail identity configured on an account."""

    id: str
    email: str
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Identity:
        return cls(
            id=str(data["id"]),
            email=data.get("email") or "",
            name=data.get("name") or "",
        )


@dataclass
class Account:
    """A mail account and its identities."""

    id: str
    type: str = "imap"
    name: str = ""
    identities: list[Identity] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Account:
        return cls(
            id=str(data["id"]),
            type=data.get("type") or "imap",
            name=data.get("name") or "",
            identities=[Identity.from_dict(i) for i in data.get("identities") or []],
        )


# Numeric string forms accepted by the address book's flag coercion:
# decimal (with optional exponent), Infinity, and 0x / 0b / 0o integers.
_NUMBER_RE = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+",
    re.ASCII,
)


def _to_number(text: str) -> float:
    """Parse *text* as a number, returning NaN when it is not one.

    Blank text is zero. Python-only spellings such as ``inf`` or ``1_0``
    are rejected.
    """
    text = text.strip()
    if not text:
        return 0.0
    if not _NUMBER_RE.fullmatch(text):
        return math.nan
    if text[:2].lower() in ("0x", "0b", "0o"):
        return float(int(text, 0))
    return float(text.replace("Infinity", "inf"))


def prefers_display_name(value) -> bool:
    """Coerce a ``PreferDisplayName`` value to a bool.

    Address books store the flag as the literal string ``"0"`` or ``"1"``.
    An unset flag means the display name is preferred; anything that is not
    a number counts as false.
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        number = _to_number(str(value))
    return number != 0 and not math.isnan(number)


def compose_name(card: Card) -> str | None:
    """Pick the display name for *card* according to its name preference."""
    if prefers_display_name(card.properties.get(PREFER_DISPLAY_NAME)):
        return card.get(DISPLAY_NAME)

    parts = [p for p in (card.get(FIRST_NAME), card.get(LAST_NAME)) if p]
    return " ".join(parts) if parts else None
