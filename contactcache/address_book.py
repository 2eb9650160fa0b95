"""Address book backed by vCard (.vcf) files."""

from __future__ import annotations

import base64
import logging
import uuid
from collections.abc import Iterator
from pathlib import Path

import vobject

from .models import (
    DISPLAY_NAME,
    FIRST_NAME,
    LAST_NAME,
    NICK_NAME,
    PHOTO_URI,
    PREFER_DISPLAY_NAME,
    PRIMARY_EMAIL,
    SECOND_EMAIL,
    Card,
)
from .notifications import ContactEvents

log = logging.getLogger(__name__)

# Properties compared against the search text by quick_search().
SEARCH_FIELDS = (DISPLAY_NAME, FIRST_NAME, LAST_NAME, NICK_NAME, PRIMARY_EMAIL, SECOND_EMAIL)

_PREFER_DISPLAY_NAME_PROPS = ("X-MOZILLA-PREFER-DISPLAY-NAME", "X-PREFER-DISPLAY-NAME")


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------

def find_vcf_files(path: str | Path, *, recursive: bool = False) -> list[Path]:
    """List the vCard files an address book is loaded from.

    *path* names a single ``.vcf`` file or a directory of them; nested
    directories are searched only when *recursive* is set. Files come back
    sorted so cards load, and therefore match, in a stable order.
    """
    source = Path(path).expanduser()
    if not source.exists():
        raise FileNotFoundError(f"Address book path not found: {source}")

    if source.is_dir():
        files = sorted(source.glob("**/*.vcf" if recursive else "*.vcf"))
        if not files:
            raise ValueError(f"No .vcf files found in {source}")
        return files

    if source.suffix.lower() != ".vcf":
        raise ValueError(f"Not a .vcf file: {source}")
    return [source]


# ---------------------------------------------------------------------------
# vCard parsing
# ---------------------------------------------------------------------------

def parse_vcard_file(path: Path) -> list:
    """Read the vCard components of one file.

    A file vobject cannot parse contributes no cards; the failure is logged
    and loading carries on with the next file.
    """
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            return list(vobject.readComponents(f))
    except Exception as exc:
        log.warning("Skipping unreadable vCard file %s: %s", path, exc)
        return []


def _text(value) -> str:
    """Flatten a vobject value (possibly a nested list) to a stripped string."""
    if isinstance(value, (list, tuple)):
        return " ".join(t for t in (_text(v) for v in value) if t)
    if value is None:
        return ""
    return str(value).strip()


def _photo_uri(child) -> str | None:
    value = child.value
    if isinstance(value, bytes):
        # Inline (ENCODING=b) photo
        types = child.params.get("TYPE", [])
        subtype = types[0].lower() if types else "jpeg"
        return f"data:image/{subtype};base64,{base64.b64encode(value).decode('ascii')}"
    value = _text(value)
    return value or None


def card_from_vcard(vcard, *, parent_id: str | None = None) -> Card:
    """Map a parsed vCard component to a ``Card``.

    The first two EMAIL entries become PrimaryEmail and SecondEmail.
    """
    properties: dict[str, str] = {}
    emails: list[str] = []
    card_id = None

    for child in vcard.getChildren():
        name = child.name.upper()
        if name == "FN":
            display = _text(child.value)
            if display:
                properties[DISPLAY_NAME] = display
        elif name == "N":
            n = child.value
            given = _text(n.given)
            family = _text(n.family)
            if given:
                properties[FIRST_NAME] = given
            if family:
                properties[LAST_NAME] = family
        elif name == "NICKNAME":
            nick = _text(child.value)
            if nick:
                properties[NICK_NAME] = nick
        elif name == "EMAIL":
            value = _text(child.value)
            if value:
                emails.append(value)
        elif name == "PHOTO":
            uri = _photo_uri(child)
            if uri:
                properties[PHOTO_URI] = uri
        elif name in _PREFER_DISPLAY_NAME_PROPS:
            properties[PREFER_DISPLAY_NAME] = _text(child.value)
        elif name == "UID":
            card_id = _text(child.value) or None

    if emails:
        properties[PRIMARY_EMAIL] = emails[0]
    if len(emails) > 1:
        properties[SECOND_EMAIL] = emails[1]

    return Card(id=card_id or str(uuid.uuid4()), properties=properties, parent_id=parent_id)


# ---------------------------------------------------------------------------
# Address book
# ---------------------------------------------------------------------------

class VCardAddressBook:
    """In-memory address book loaded from vCard files.

    Edits made through ``add_card``/``update_card``/``delete_card`` are
    announced on ``events`` so caches can drop stale entries.
    """

    def __init__(
        self,
        cards: list[Card] | None = None,
        *,
        book_id: str = "vcard",
        events: ContactEvents | None = None,
    ) -> None:
        self.id = book_id
        self.events = events if events is not None else ContactEvents()
        self._cards: dict[str, Card] = {}
        for card in cards or []:
            card.parent_id = self.id
            self._cards[card.id] = card

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        *,
        recursive: bool = False,
        events: ContactEvents | None = None,
    ) -> VCardAddressBook:
        """Load every vCard found at *path*."""
        book = cls(book_id=str(Path(path).expanduser()), events=events)
        files = find_vcf_files(path, recursive=recursive)
        for vcf_path in files:
            for vcard in parse_vcard_file(vcf_path):
                card = card_from_vcard(vcard, parent_id=book.id)
                if card.id in book._cards:
                    log.warning("Duplicate vCard UID %s in %s, keeping the first", card.id, vcf_path)
                    continue
                book._cards[card.id] = card
        log.info("Loaded %d card(s) from %d file(s)", len(book._cards), len(files))
        return book

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(list(self._cards.values()))

    def get_card(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def search(self, text: str) -> list[Card]:
        """Cards whose name or email fields contain *text* (case-insensitive),
        in load order."""
        needle = text.strip().lower()
        if not needle:
            return []
        return [
            card for card in self._cards.values()
            if any(needle in (card.get(f) or "").lower() for f in SEARCH_FIELDS)
        ]

    async def quick_search(self, text: str) -> list[Card]:
        return self.search(text)

    def add_card(self, card: Card) -> Card:
        if card.id in self._cards:
            raise ValueError(f"Card {card.id} already exists")
        card.parent_id = self.id
        self._cards[card.id] = card
        self.events.emit_created(card)
        return card

    def update_card(self, card_id: str, properties: dict[str, str | None]) -> Card:
        """Merge *properties* into a card; a value of None removes the field."""
        card = self._cards.get(card_id)
        if card is None:
            raise KeyError(card_id)
        for key, value in properties.items():
            if value is None:
                card.properties.pop(key, None)
            else:
                card.properties[key] = value
        self.events.emit_updated(card)
        return card

    def delete_card(self, card_id: str) -> None:
        if self._cards.pop(card_id, None) is None:
            raise KeyError(card_id)
        self.events.emit_deleted(self.id, card_id)
