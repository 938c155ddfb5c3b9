"""Cursor pagination over GitHub GraphQL connections.

A connection is the ``{edges: [{node, cursor}], pageInfo: {hasNextPage,
endCursor}}`` shape GitHub returns for searches and organization listings.
:func:`fetch_all` drives any page function to completion; callers only write
the function that fetches and parses one page.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .errors import MissingDataError
from .models import Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageFn = Callable[[Optional[str]], Optional[Page[T]]]


def fetch_all(query_fn: PageFn[T]) -> List[T]:
    """Accumulate every item of a cursor-paged query.

    ``query_fn`` receives the cursor of the page to fetch (``None`` for the
    first page) and returns that page, or ``None`` when the response has no
    matching top-level entity. A missing entity ends pagination and returns the
    items gathered so far; it is not an error.

    Errors raised by ``query_fn`` propagate unchanged.
    """
    items: List[T] = []
    cursor: Optional[str] = None
    pages = 0

    while True:
        page = query_fn(cursor)
        if page is None:
            logger.debug("Paged query returned no entity", extra={"pages": pages})
            break

        pages += 1
        items.extend(page.items)

        if not page.has_next_page:
            break
        cursor = page.end_cursor

    logger.debug("Paged query complete", extra={"pages": pages, "items": len(items)})
    return items


def require(payload: Any, key: str, context: str) -> Any:
    """Return ``payload[key]`` or raise ``MissingDataError``."""
    if not isinstance(payload, dict) or key not in payload or payload[key] is None:
        raise MissingDataError(f"Response is missing '{key}' in {context}")
    return payload[key]


def connection_page(
    connection: Optional[Dict[str, Any]],
    parse_node: Callable[[Dict[str, Any]], Optional[T]],
) -> Optional[Page[T]]:
    """Convert a GraphQL connection into a ``Page``.

    ``parse_node`` may return ``None`` to skip a node (for example a search hit
    of an unexpected type). Null edges and null nodes are skipped.

    Raises:
        MissingDataError: If ``edges`` or ``pageInfo`` is absent, or the page
            claims a successor without providing a cursor.
    """
    if connection is None:
        return None

    edges = require(connection, "edges", "connection")
    page_info = require(connection, "pageInfo", "connection")
    has_next_page = require(page_info, "hasNextPage", "pageInfo")
    end_cursor = page_info.get("endCursor")

    if has_next_page and not end_cursor:
        raise MissingDataError("pageInfo reports another page but has no endCursor")

    items: List[T] = []
    for edge in edges:
        if not edge or not edge.get("node"):
            continue
        item = parse_node(edge["node"])
        if item is not None:
            items.append(item)

    return Page(items=items, has_next_page=bool(has_next_page), end_cursor=end_cursor)
