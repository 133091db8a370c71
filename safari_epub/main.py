#!/usr/bin/env python3
"""
safari-epub: Package a book from the online reader as an EPUB.

Commands:
    fetch-book <url>        Fetch metadata, chapters, stylesheet, cover and
                            images, then write <title>.epub
    toc <url>               Print the book's flat table of contents

<url> is the reader address of the book, e.g.
    https://learning.oreilly.com/library/view/some-title/9781234567890/

The session is taken from a cookie file (JSON {name: value}) exported from
a logged-in browser; see --cookies.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .assembler import BookAssembler, RunContext
from .client import SafariClient, load_cookies
from .config import COOKIES_FILE, MAX_CONCURRENT, OUTPUT_DIR
from .epub_builder import package_book
from .toc import fetch_toc
from .utils import extract_book_id

log = logging.getLogger("safari-epub")
console = Console()


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run_fetch_book(
    url: str,
    output_dir: Path,
    cookies_file: str = COOKIES_FILE,
    max_concurrent: int = MAX_CONCURRENT,
) -> Path:
    book_id = extract_book_id(url)
    async with SafariClient(cookies=load_cookies(cookies_file)) as client:
        context = RunContext(book_id=book_id, client=client, max_concurrent=max_concurrent)
        book = await BookAssembler(context).assemble()
        return await package_book(client, book, output_dir, max_concurrent)


def cmd_fetch_book(args) -> int:
    """Fetch a whole book and save it as an EPUB."""
    start_time = time.time()
    try:
        path = asyncio.run(
            run_fetch_book(
                args.url,
                Path(args.output),
                cookies_file=args.cookies,
                max_concurrent=args.max_concurrent,
            )
        )
    except Exception as e:
        if args.verbose:
            log.exception("book download failed")
        else:
            log.error("book download failed: %s", e)
        return 1

    elapsed = time.time() - start_time
    console.print(Panel(f"[green]{path}[/green]\nDone in {elapsed:.0f}s", title="EPUB written"))
    return 0


async def run_toc(url: str, cookies_file: str = COOKIES_FILE):
    book_id = extract_book_id(url)
    async with SafariClient(cookies=load_cookies(cookies_file)) as client:
        return book_id, await fetch_toc(client, book_id)


def cmd_toc(args) -> int:
    """Print the flat TOC of a book."""
    try:
        book_id, toc = asyncio.run(run_toc(args.url, cookies_file=args.cookies))
    except Exception as e:
        log.error("could not fetch TOC: %s", e)
        return 1

    table = Table(title=f"Book {book_id}")
    table.add_column("Order", justify="right")
    table.add_column("Id")
    table.add_column("URL", overflow="fold")
    for chapter_url, entry in sorted(toc.items(), key=lambda item: item[1].order):
        table.add_row(str(entry.order), entry.id, chapter_url)
    console.print(table)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Package a book from the online reader as an EPUB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--cookies", default=COOKIES_FILE, help=f"Session cookie file (default: {COOKIES_FILE})")

    sub = parser.add_subparsers(dest="command")

    p_book = sub.add_parser("fetch-book", help="Fetch a book and write an EPUB")
    p_book.add_argument("url", help="Reader URL of the book")
    p_book.add_argument("-o", "--output", default=OUTPUT_DIR, help="Output directory")
    p_book.add_argument(
        "--max-concurrent",
        type=int,
        default=MAX_CONCURRENT,
        help=f"Max in-flight chapter/image fetches (default: {MAX_CONCURRENT})",
    )

    p_toc = sub.add_parser("toc", help="Print the book's table of contents")
    p_toc.add_argument("url", help="Reader URL of the book")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "fetch-book":
        return cmd_fetch_book(args)
    if args.command == "toc":
        return cmd_toc(args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
