"""Find candidate documentation URLs for a topic via the Serper search API."""

import logging
import os
from urllib.parse import urlparse

import httpx

from .config import MAX_SEARCH_RESULTS, SERPER_SEARCH_URL

logger = logging.getLogger(__name__)


def extract_urls(payload, max_results=MAX_SEARCH_RESULTS):
    """Pull unique http(s) links from a Serper response, in rank order."""
    urls = []
    for item in payload.get("organic", []):
        link = item.get("link") if isinstance(item, dict) else None
        if not link or urlparse(link).scheme not in ("http", "https"):
            continue
        if link not in urls:
            urls.append(link)
        if len(urls) >= max_results:
            break
    return urls


async def search_docs(topic, api_key=None, client=None, max_results=MAX_SEARCH_RESULTS):
    """Search the web for documentation about ``topic``.

    Returns a possibly empty list of URLs. Raises ValueError if no API key
    is configured and httpx.HTTPError if the search request fails.
    """
    api_key = api_key or os.environ.get("SERPER_API_KEY")
    if not api_key:
        raise ValueError("SERPER_API_KEY is not set")

    body = {"q": f"{topic} documentation", "num": max_results}
    headers = {"X-API-KEY": api_key, "Content-Type": "application/json"}

    if client is None:
        async with httpx.AsyncClient(timeout=30.0) as own_client:
            response = await own_client.post(SERPER_SEARCH_URL, json=body, headers=headers)
    else:
        response = await client.post(SERPER_SEARCH_URL, json=body, headers=headers)
    response.raise_for_status()

    urls = extract_urls(response.json(), max_results=max_results)
    logger.info("Found %d candidate URLs for %r", len(urls), topic)
    return urls
