"""Web search tool handler with Serper as primary and SerpApi as fallback."""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

SERPER_URL = "https://google.serper.dev/search"
SERPAPI_URL = "https://serpapi.com/search"
MAX_RESULTS = 5

NOT_CONFIGURED_MESSAGE = (
    "Web search is not configured. Set SERPER_API_KEY or SERPAPI_API_KEY "
    "to enable it; answer from the database or general knowledge instead."
)


def _normalize(items: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    results = []
    for item in items[:MAX_RESULTS]:
        results.append({
            "title": item.get("title", ""),
            "url": item.get("link", ""),
            "snippet": item.get("snippet", ""),
        })
    return results


async def search_serper(client: httpx.AsyncClient, api_key: str, query: str) -> List[Dict[str, str]]:
    response = await client.post(
        SERPER_URL,
        headers={"X-API-KEY": api_key, "Content-Type": "application/json"},
        json={"q": query, "num": MAX_RESULTS},
    )
    response.raise_for_status()
    return _normalize(response.json().get("organic") or [])


async def search_serpapi(client: httpx.AsyncClient, api_key: str, query: str) -> List[Dict[str, str]]:
    response = await client.get(
        SERPAPI_URL,
        params={"api_key": api_key, "engine": "google", "q": query, "num": str(MAX_RESULTS)},
    )
    response.raise_for_status()
    data = response.json()
    if data.get("error"):
        raise httpx.HTTPError(f"SerpApi error: {data['error']}")
    return _normalize(data.get("organic_results") or [])


async def web_search_handler(
    query: str,
    serper_api_key: Optional[str] = None,
    serpapi_api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> Dict[str, Any]:
    """Search the web and return up to five ``{title, url, snippet}`` results.

    Args:
        query: Free-text search query
        serper_api_key: Primary provider key
        serpapi_api_key: Secondary provider key
        client: Optional shared HTTP client
        timeout: Timeout for a client created here

    Returns:
        ``{"results": [...], "message": ...}``; never raises for provider failures
    """
    logger.info(f"[Tool] webSearch called: {query}")
    if not serper_api_key and not serpapi_api_key:
        return {"results": [], "message": NOT_CONFIGURED_MESSAGE}

    if not isinstance(query, str) or not query.strip():
        return {"results": [], "error": "query is required", "message": "No search query given"}

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout)

    errors = []
    try:
        providers = [
            ("serper", serper_api_key, search_serper),
            ("serpapi", serpapi_api_key, search_serpapi),
        ]
        for name, api_key, search in providers:
            if not api_key:
                continue
            try:
                results = await search(client, api_key, query)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"{name} search failed: {e}")
                errors.append(f"{name}: {e}")
                continue
            if results:
                return {
                    "results": results,
                    "source": name,
                    "message": f"Found {len(results)} results",
                }
            logger.info(f"{name} returned no results for: {query}")
    finally:
        if owns_client:
            await client.aclose()

    if errors:
        return {
            "results": [],
            "error": "; ".join(errors),
            "message": "Web search failed",
        }
    return {"results": [], "message": "No results found"}
