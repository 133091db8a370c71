"""Configuration for safari-epub.

Every value can be overridden from the environment so the tool runs
against a mirror or with a cookie jar stored elsewhere.
"""

import os

BASE_URL = os.environ.get("SAFARI_BASE_URL", "https://learning.oreilly.com").rstrip("/")

HEADERS = {
    "user-agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    ),
    "accept": "application/json, text/html;q=0.9, */*;q=0.8",
}

# JSON object of {name: value} cookies from an existing logged-in session
COOKIES_FILE = os.environ.get("SAFARI_COOKIES_FILE", "cookies.json")

MAX_CONCURRENT = 3  # in-flight chapter fetches per book
REQUEST_TIMEOUT = 30  # seconds

OUTPUT_DIR = os.environ.get("SAFARI_OUTPUT_DIR", os.getcwd())

API_BOOK_PATH = "api/v1/book/{book_id}/"
API_TOC_PATH = "api/v1/book/{book_id}/flat-toc/"

# Chapters the flat TOC does not list (the book's own TOC page)
TOC_SENTINEL_ORDER = 0
TOC_SENTINEL_ID = "tocxhtmlfile"
