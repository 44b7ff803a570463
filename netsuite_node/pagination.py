"""
pagination.py

Walk NetSuite's paged responses ({items, hasMore, links[rel=next], ...}).

- hasMore is the only stop signal; totalResults is informational
- page N+1 is requested only after page N was processed
- with return_all=False, a fetched page is truncated to the remaining limit
"""

from typing import Any, Callable, Dict, List, MutableMapping, Optional

from .log import get_logger
from .models import RequestDescriptor, parse_paged_body

logger = get_logger(__name__)

FetchPage = Callable[[RequestDescriptor], Dict[str, Any]]


def collect(
    fetch: FetchPage,
    request: RequestDescriptor,
    return_all: bool,
    limit: int,
    node_context: Optional[MutableMapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch pages until the limit is reached or the server has no more data.

    `fetch` executes and normalizes one request, returning {"json": body}.
    Every call signs/authenticates afresh. `request.next_url` is updated with
    the server's next link between pages.
    """
    context = node_context if node_context is not None else {}
    return_data: List[Dict[str, Any]] = []
    has_more = True

    context["hasMore"] = has_more
    context["count"] = limit

    while (return_all or len(return_data) < limit) and has_more:
        body = fetch(request).get("json")

        if isinstance(body, dict) and "error" in body and "items" not in body:
            # continue-on-fail error payload: surface it and stop
            return_data.append({"json": body})
            break

        page = parse_paged_body(body)
        do_continue = page.has_more

        if do_continue:
            next_url = page.next_url
            if not next_url:
                logger.warning("NetSuite reported hasMore without a next link; stopping pagination")
                do_continue = False
            request.next_url = next_url or request.next_url

        for item in page.items:
            if return_all or len(return_data) < limit:
                return_data.append({"json": item})

        has_more = do_continue and (return_all or len(return_data) < limit)

        context["hasMore"] = page.has_more
        context["count"] = page.count
        context["offset"] = page.offset
        context["totalResults"] = page.total_results
        if request.next_url:
            context["nextUrl"] = request.next_url

        logger.debug(
            "Fetched page: items=%s offset=%s hasMore=%s totalResults=%s collected=%s",
            len(page.items), page.offset, page.has_more, page.total_results, len(return_data),
        )

    return return_data
