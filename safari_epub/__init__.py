"""Package books from the online reader API as EPUB archives.

Usage::

    from safari_epub import BookAssembler, RunContext, SafariClient

    async with SafariClient(cookies=cookies) as client:
        book = await BookAssembler(RunContext(book_id, client)).assemble()
"""

from .assembler import BookAssembler, RunContext
from .client import EmptyLocator, FetchError, SafariClient
from .throttle import Throttle, ThrottleConfigError

__all__ = [
    "BookAssembler",
    "EmptyLocator",
    "FetchError",
    "RunContext",
    "SafariClient",
    "Throttle",
    "ThrottleConfigError",
]
