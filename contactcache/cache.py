"""Cache of contact details keyed by email address.

Looks contacts up in the address book and the account identities, assigns
each one a color, and keeps the result until an address-book change
notification invalidates it. Concurrent requests for the same address
share a single fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from .colors import color_for
from .models import (
    PHOTO_URI,
    PRIMARY_EMAIL,
    SECOND_EMAIL,
    Account,
    Card,
    ContactRecord,
    compose_name,
)
from .notifications import ContactEvents, Subscription

log = logging.getLogger(__name__)


class AddressBookLookup(Protocol):
    async def quick_search(self, text: str) -> Sequence[Card]: ...


class AccountDirectory(Protocol):
    async def list(self) -> Sequence[Account]: ...


class ContactCache:
    """Resolve email addresses to ``ContactRecord``s.

    Records are stored under every address of the matching card, so a
    lookup by a contact's second address is answered from the cache once
    the primary one has been resolved. Callers always get a copy.
    """

    def __init__(self, address_book: AddressBookLookup, accounts: AccountDirectory) -> None:
        self._address_book = address_book
        self._accounts = accounts
        self._cache: dict[str, ContactRecord] = {}
        # email -> Task yielding (aliases, record)
        self._active_fetches: dict[str, asyncio.Task] = {}
        # Built once; not refreshed when accounts change.
        self._identity_emails: dict[str, str] | None = None
        self._identity_build: asyncio.Future | None = None
        self._subscriptions: list[Subscription] = []

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def resolve(self, email: str) -> ContactRecord:
        """Return contact information for *email*."""
        if not isinstance(email, str):
            raise TypeError(f"email must be a str, not {type(email).__name__}")

        cached = self._cache.get(email)
        if cached is not None:
            return cached.clone()

        fetch = self._active_fetches.get(email)
        if fetch is None:
            fetch = asyncio.ensure_future(self._fetch_and_store(email))
            self._active_fetches[email] = fetch

        # Shielded: a cancelled caller must not cancel the fetch other
        # callers are waiting on.
        _, contact = await asyncio.shield(fetch)
        return contact.clone()

    def peek(self, email: str) -> ContactRecord | None:
        """Return a copy of the cached record for *email* without fetching."""
        cached = self._cache.get(email)
        return cached.clone() if cached is not None else None

    def is_fetching(self, email: str) -> bool:
        return email in self._active_fetches

    def clear(self) -> None:
        """Forget every cached contact. The identity index is kept."""
        self._cache.clear()

    def __contains__(self, email: object) -> bool:
        return email in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    async def _fetch_and_store(self, email: str) -> tuple[list[str], ContactRecord]:
        try:
            emails, contact = await self._fetch_contact_details(email)
            # Written even if an invalidation arrived while fetching.
            for alias in emails:
                self._cache[alias] = contact
            return emails, contact
        finally:
            self._active_fetches.pop(email, None)

    async def _fetch_contact_details(self, email: str) -> tuple[list[str], ContactRecord]:
        log.debug("Fetching contact details for %s", email)
        try:
            matching_cards = list(await self._address_book.quick_search(email))
        except Exception as exc:
            # Treated as no match.
            log.warning("Address book search failed for %s: %s", email, exc)
            matching_cards = []

        contact_id = None
        name = None
        photo_uri = None
        emails: list[str] = []
        email_for_color = email

        if matching_cards:
            # Only the first match is used.
            card = matching_cards[0]
            contact_id = card.id
            name = compose_name(card)

            primary = card.get(PRIMARY_EMAIL)
            if primary:
                emails.append(primary)
                email_for_color = primary
            second = card.get(SECOND_EMAIL)
            if second:
                emails.append(second)
            photo_uri = card.get(PHOTO_URI)

        if not emails:
            emails.append(email)

        identity_emails = await self._get_identity_emails()

        return emails, ContactRecord(
            color=color_for(email_for_color),
            contact_id=contact_id,
            identity_id=identity_emails.get(email),
            name=name,
            photo_uri=photo_uri,
        )

    async def _get_identity_emails(self) -> dict[str, str]:
        if self._identity_emails is not None:
            return self._identity_emails
        # A cancelled build (e.g. its event loop shut down) is started afresh.
        if self._identity_build is None or self._identity_build.cancelled():
            self._identity_build = asyncio.ensure_future(self._build_identity_emails())
        return await asyncio.shield(self._identity_build)

    async def _build_identity_emails(self) -> dict[str, str]:
        emails: dict[str, str] = {}
        try:
            for account in await self._accounts.list():
                if account.type == "nntp":
                    continue
                for identity in account.identities:
                    emails[identity.email] = identity.id
        except Exception as exc:
            log.warning("Could not list accounts, identities will not be matched: %s", exc)
            emails = {}

        log.debug("Indexed %d identity email(s)", len(emails))
        self._identity_emails = emails
        return emails

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def contact_created(self, card: Card) -> None:
        self._forget_card_emails(card)

    def contact_updated(self, card: Card) -> None:
        self._forget_card_emails(card)

    def contact_deleted(self, parent_id: str | None, contact_id: str) -> None:
        stale = [key for key, value in self._cache.items() if value.contact_id == contact_id]
        for key in stale:
            del self._cache[key]
        if stale:
            log.debug("Dropped %d cached address(es) of deleted contact %s", len(stale), contact_id)

    def _forget_card_emails(self, card: Card) -> None:
        self._cache.pop(card.properties.get(PRIMARY_EMAIL), None)
        self._cache.pop(card.properties.get(SECOND_EMAIL), None)

    # ------------------------------------------------------------------
    # Listener lifecycle
    # ------------------------------------------------------------------

    def attach(self, events: ContactEvents) -> list[Subscription]:
        """Subscribe the invalidation hooks to *events*."""
        subscriptions = [
            events.on_created(self.contact_created),
            events.on_updated(self.contact_updated),
            events.on_deleted(self.contact_deleted),
        ]
        self._subscriptions.extend(subscriptions)
        return subscriptions

    def dispose(self) -> None:
        """Remove every listener registered through ``attach``."""
        for subscription in self._subscriptions:
            subscription.remove()
        self._subscriptions.clear()


def initialize(
    address_book: AddressBookLookup,
    accounts: AccountDirectory,
    events: ContactEvents | None = None,
) -> ContactCache:
    """Create a ``ContactCache``, wiring it to *events* when given."""
    cache = ContactCache(address_book, accounts)
    if events is not None:
        cache.attach(events)
    return cache
