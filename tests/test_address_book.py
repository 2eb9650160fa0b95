"""Tests for contactcache.address_book — vCard-backed address book.

Covers:
- File finding (single file, directory, recursive, errors)
- vCard parsing and mapping to cards
- quick_search matching
- Edits emitting change notifications, end to end with ContactCache
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import vobject

from contactcache.accounts import StaticAccountDirectory
from contactcache.address_book import (
    VCardAddressBook,
    card_from_vcard,
    find_vcf_files,
    parse_vcard_file,
)
from contactcache.cache import initialize
from contactcache.colors import color_for
from contactcache.models import Card


def _make_vcf(path: Path, content: str) -> Path:
    """Write a .vcf file with given content."""
    path.write_text(content, encoding="utf-8")
    return path


SAMPLE_VCF = """\
BEGIN:VCARD
VERSION:3.0
UID:card-john
FN:John Smith
N:Smith;John;;;
NICKNAME:Johnny
EMAIL;TYPE=INTERNET;TYPE=WORK:john@acme.com
EMAIL;TYPE=INTERNET;TYPE=HOME:john@gmail.com
EMAIL;TYPE=INTERNET:johnny@old.example
PHOTO;VALUE=uri:https://example.com/john.png
X-MOZILLA-PREFER-DISPLAY-NAME:0
END:VCARD
"""

SAMPLE_MULTI_VCF = """\
BEGIN:VCARD
VERSION:3.0
UID:card-alice
FN:Alice Wonder
EMAIL;TYPE=INTERNET;TYPE=WORK:alice@wonder.com
END:VCARD
BEGIN:VCARD
VERSION:3.0
UID:card-bob
FN:Bob Builder
EMAIL;TYPE=INTERNET;TYPE=WORK:bob@builder.com
END:VCARD
"""


def _parse_one(text: str):
    return next(vobject.readComponents(text))


# ---------------------------------------------------------------------------
# File discovery and parsing
# ---------------------------------------------------------------------------

class TestFindVcfFiles:

    def test_single_file(self, tmp_path):
        vcf = _make_vcf(tmp_path / "test.vcf", SAMPLE_VCF)
        assert find_vcf_files(vcf) == [vcf]

    def test_non_vcf_file_raises(self, tmp_path):
        txt = tmp_path / "test.txt"
        txt.write_text("not a vcard")
        with pytest.raises(ValueError, match="Not a .vcf file"):
            find_vcf_files(txt)

    def test_directory(self, tmp_path):
        _make_vcf(tmp_path / "a.vcf", SAMPLE_VCF)
        _make_vcf(tmp_path / "b.vcf", SAMPLE_MULTI_VCF)
        (tmp_path / "c.txt").write_text("not a vcard")
        files = find_vcf_files(tmp_path)
        assert [f.name for f in files] == ["a.vcf", "b.vcf"]

    def test_empty_directory_raises(self, tmp_path):
        with pytest.raises(ValueError, match="No .vcf files found"):
            find_vcf_files(tmp_path)

    def test_nonexistent_path_raises(self):
        with pytest.raises(FileNotFoundError):
            find_vcf_files("/nonexistent/path")

    def test_recursive(self, tmp_path):
        _make_vcf(tmp_path / "root.vcf", SAMPLE_VCF)
        sub = tmp_path / "subdir"
        sub.mkdir()
        _make_vcf(sub / "nested.vcf", SAMPLE_MULTI_VCF)
        assert len(find_vcf_files(tmp_path, recursive=False)) == 1
        assert len(find_vcf_files(tmp_path, recursive=True)) == 2


class TestParseVcardFile:

    def test_multi_vcard_file(self, tmp_path):
        vcf = _make_vcf(tmp_path / "multi.vcf", SAMPLE_MULTI_VCF)
        assert len(parse_vcard_file(vcf)) == 2

    def test_invalid_file_returns_empty(self, tmp_path):
        bad = _make_vcf(tmp_path / "bad.vcf", "not a vcard at all")
        assert parse_vcard_file(bad) == []

    def test_empty_file_returns_empty(self, tmp_path):
        empty = _make_vcf(tmp_path / "empty.vcf", "")
        assert parse_vcard_file(empty) == []


class TestCardFromVcard:

    def test_full_card(self):
        card = card_from_vcard(_parse_one(SAMPLE_VCF), parent_id="book")
        assert card.id == "card-john"
        assert card.parent_id == "book"
        assert card.properties == {
            "DisplayName": "John Smith",
            "FirstName": "John",
            "LastName": "Smith",
            "NickName": "Johnny",
            "PrimaryEmail": "john@acme.com",
            "SecondEmail": "john@gmail.com",
            "PhotoURI": "https://example.com/john.png",
            "PreferDisplayName": "0",
        }

    def test_emails_keep_case(self):
        card = card_from_vcard(_parse_one(
            "BEGIN:VCARD\nVERSION:3.0\nFN:X\nEMAIL:Mixed.Case@Example.com\nEND:VCARD\n"
        ))
        assert card.get("PrimaryEmail") == "Mixed.Case@Example.com"
        assert card.get("SecondEmail") is None

    def test_missing_uid_generates_id(self):
        card = card_from_vcard(_parse_one(
            "BEGIN:VCARD\nVERSION:3.0\nFN:No Uid\nEND:VCARD\n"
        ))
        assert card.id
        assert card.get("PrimaryEmail") is None


# ---------------------------------------------------------------------------
# Address book
# ---------------------------------------------------------------------------

@pytest.fixture()
def book(tmp_path):
    _make_vcf(tmp_path / "a.vcf", SAMPLE_VCF)
    _make_vcf(tmp_path / "b.vcf", SAMPLE_MULTI_VCF)
    return VCardAddressBook.from_path(tmp_path)


class TestVCardAddressBook:

    def test_loads_all_cards(self, book):
        assert len(book) == 3
        assert all(card.parent_id == book.id for card in book)

    def test_duplicate_uid_keeps_first(self, tmp_path):
        _make_vcf(tmp_path / "a.vcf", SAMPLE_MULTI_VCF)
        _make_vcf(tmp_path / "b.vcf", SAMPLE_MULTI_VCF.replace("Alice Wonder", "Alice Again"))
        book = VCardAddressBook.from_path(tmp_path)
        assert len(book) == 2
        assert book.get_card("card-alice").get("DisplayName") == "Alice Wonder"

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            VCardAddressBook.from_path(tmp_path / "missing.vcf")

    def test_search_by_email(self, book):
        assert [c.id for c in book.search("bob@builder.com")] == ["card-bob"]

    def test_search_case_insensitive(self, book):
        assert [c.id for c in book.search("ALICE@WONDER.COM")] == ["card-alice"]

    def test_search_substring_in_load_order(self, book):
        ids = [c.id for c in book.search("o")]
        assert ids == ["card-john", "card-alice", "card-bob"]

    def test_search_second_email(self, book):
        assert [c.id for c in book.search("john@gmail.com")] == ["card-john"]

    def test_blank_search(self, book):
        assert book.search("  ") == []

    def test_quick_search(self, book):
        cards = asyncio.run(book.quick_search("alice@wonder.com"))
        assert [c.id for c in cards] == ["card-alice"]

    def test_add_card_emits_created(self):
        book = VCardAddressBook(book_id="mem")
        received = []
        book.events.on_created(received.append)
        card = book.add_card(Card(id="c1", properties={"PrimaryEmail": "c@x"}))
        assert received == [card]
        assert card.parent_id == "mem"

    def test_add_duplicate_raises(self):
        book = VCardAddressBook([Card(id="c1")])
        with pytest.raises(ValueError):
            book.add_card(Card(id="c1"))

    def test_update_card_merges_and_emits(self):
        book = VCardAddressBook([Card(id="c1", properties={"PrimaryEmail": "c@x", "PhotoURI": "p"})])
        received = []
        book.events.on_updated(received.append)
        card = book.update_card("c1", {"DisplayName": "C", "PhotoURI": None})
        assert card.properties == {"PrimaryEmail": "c@x", "DisplayName": "C"}
        assert received == [card]

    def test_update_missing_raises(self):
        with pytest.raises(KeyError):
            VCardAddressBook().update_card("nope", {})

    def test_delete_card_emits(self):
        book = VCardAddressBook([Card(id="c1")], book_id="mem")
        received = []
        book.events.on_deleted(lambda parent_id, card_id: received.append((parent_id, card_id)))
        book.delete_card("c1")
        assert received == [("mem", "c1")]
        assert book.get_card("c1") is None

    def test_delete_missing_raises(self):
        with pytest.raises(KeyError):
            VCardAddressBook().delete_card("nope")


# ---------------------------------------------------------------------------
# End to end with ContactCache
# ---------------------------------------------------------------------------

class TestWithContactCache:

    def test_resolve_from_vcard(self, book):
        cache = initialize(book, StaticAccountDirectory(), book.events)
        record = asyncio.run(cache.resolve("john@gmail.com"))
        assert record.contact_id == "card-john"
        assert record.name == "John Smith"
        assert record.color == color_for("john@acme.com")
        assert record.photo_uri == "https://example.com/john.png"
        assert "john@acme.com" in cache

    def test_edit_invalidates_cache(self, book):
        cache = initialize(book, StaticAccountDirectory(), book.events)
        asyncio.run(cache.resolve("alice@wonder.com"))

        book.update_card("card-alice", {"DisplayName": "Alice Liddell"})
        assert "alice@wonder.com" not in cache
        assert asyncio.run(cache.resolve("alice@wonder.com")).name == "Alice Liddell"

    def test_delete_invalidates_cache(self, book):
        cache = initialize(book, StaticAccountDirectory(), book.events)
        asyncio.run(cache.resolve("bob@builder.com"))

        book.delete_card("card-bob")
        record = asyncio.run(cache.resolve("bob@builder.com"))
        assert record.contact_id is None
        assert record.name is None

    def test_add_invalidates_fallback(self):
        book = VCardAddressBook()
        cache = initialize(book, StaticAccountDirectory(), book.events)
        assert asyncio.run(cache.resolve("new@x")).name is None

        book.add_card(Card(id="c1", properties={"PrimaryEmail": "new@x", "DisplayName": "New"}))
        assert asyncio.run(cache.resolve("new@x")).name == "New"
