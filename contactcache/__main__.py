"""CLI entry point.

Usage:
    python -m contactcache resolve EMAIL [EMAIL ...]   # resolve addresses
    python -m contactcache resolve EMAIL --vcard contacts.vcf --accounts accounts.json
    python -m contactcache color TEXT [TEXT ...]       # show the color for a string
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

from . import config
from .accounts import JsonAccountDirectory, StaticAccountDirectory
from .address_book import VCardAddressBook
from .cache import ContactCache, initialize
from .colors import color_for
from .display import console, display_colors, display_contacts
from .models import ContactRecord


# ---------------------------------------------------------------------------
# Subcommand: resolve
# ---------------------------------------------------------------------------

async def _resolve_all(cache: ContactCache, emails: list[str]) -> list[ContactRecord]:
    return list(await asyncio.gather(*(cache.resolve(e) for e in emails)))


def cmd_resolve(args: argparse.Namespace) -> None:
    """Resolve each address against the address book and account identities."""
    vcard_path = args.vcard or config.VCARD_PATH
    accounts_path = args.accounts or config.ACCOUNTS_PATH

    if vcard_path:
        try:
            book = VCardAddressBook.from_path(
                vcard_path, recursive=args.recursive or config.VCARD_RECURSIVE,
            )
        except (FileNotFoundError, ValueError) as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)
    else:
        console.print("[yellow]No address book configured; names will not be resolved.[/yellow]")
        book = VCardAddressBook()

    if accounts_path:
        accounts = JsonAccountDirectory(accounts_path)
    else:
        accounts = StaticAccountDirectory()

    cache = initialize(book, accounts, book.events)
    records = asyncio.run(_resolve_all(cache, args.emails))

    if args.json:
        console.print_json(data={e: r.to_dict() for e, r in zip(args.emails, records)})
    else:
        display_contacts(list(zip(args.emails, records)))


# ---------------------------------------------------------------------------
# Subcommand: color
# ---------------------------------------------------------------------------

def cmd_color(args: argparse.Namespace) -> None:
    """Print the color assigned to each input string."""
    display_colors([(text, color_for(text)) for text in args.values])


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _log_level(value: str) -> str:
    name = value.upper()
    if not isinstance(logging.getLevelName(name), int):
        raise argparse.ArgumentTypeError(f"invalid log level: {value}")
    return name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contactcache",
        description="Resolve email addresses to contact details and colors",
    )
    parser.add_argument("--log-level", default=None, type=_log_level,
                        help=f"Logging level (default: {config.LOG_LEVEL})")
    sub = parser.add_subparsers(dest="command")

    # resolve
    rs = sub.add_parser("resolve", help="Resolve email addresses to contacts")
    rs.add_argument("emails", nargs="+", help="Email addresses to resolve")
    rs.add_argument("--vcard", type=Path, help="A .vcf file or a directory of .vcf files")
    rs.add_argument("--recursive", action="store_true",
                    help="Search the --vcard directory recursively")
    rs.add_argument("--accounts", type=Path, help="JSON file listing accounts and identities")
    rs.add_argument("--json", action="store_true", help="Print the results as JSON")

    # color
    co = sub.add_parser("color", help="Show the color assigned to a string")
    co.add_argument("values", nargs="+", help="Strings (usually email addresses)")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    logging.basicConfig(
        level=(args.log_level or config.LOG_LEVEL).upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )

    commands = {
        "resolve": cmd_resolve,
        "color": cmd_color,
    }

    if args.command is None:
        parser.print_help()
        sys.exit(2)
    commands[args.command](args)


if __name__ == "__main__":
    main()
