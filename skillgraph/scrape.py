"""Fetch candidate URLs under a concurrency ceiling and keep usable pages.

The scraping provider enforces a per-plan limit on concurrent browser
sessions. Ordinary per-URL failures are logged and dropped; a failure that
looks like that plan limit aborts the whole batch with ConcurrencyPlanError.
"""

import asyncio
import enum
import inspect
import logging

import httpx

from .config import (
    JINA_READER_URL,
    MAX_CONCURRENCY,
    MIN_DOCUMENT_LENGTH,
    PLAN_LIMIT_MARKERS,
    PLAN_LIMIT_STATUSES,
    SCRAPE_TIMEOUT,
)
from .errors import ConcurrencyPlanError
from .models import SourceDocument

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    PLAN_LIMIT = "plan_limit"
    GENERIC = "generic"


def classify_error(error):
    """Decide whether a fetch failure is a provider plan/concurrency limit.

    Best-effort substring matching on the lower-cased message, not a
    protocol signal: a message that merely mentions e.g. "plan" is treated
    as a plan limit, and a provider that words its refusal differently is
    treated as an ordinary failure.
    """
    if isinstance(error, ConcurrencyPlanError):
        return ErrorKind.PLAN_LIMIT
    message = str(error).lower()
    if any(marker in message for marker in PLAN_LIMIT_MARKERS):
        return ErrorKind.PLAN_LIMIT
    return ErrorKind.GENERIC


def is_plan_limit_error(error):
    return classify_error(error) is ErrorKind.PLAN_LIMIT


def accept_document(doc, min_length=MIN_DOCUMENT_LENGTH):
    """Keep documents with at least ``min_length`` characters of content."""
    return len(doc.content) >= min_length


def make_jina_fetcher(client, api_key=None):
    """Return an async ``url -> markdown`` fetcher backed by Jina Reader."""
    headers = {"X-Return-Format": "markdown"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    async def fetch(url):
        response = await client.get(f"{JINA_READER_URL}{url}", headers=headers)
        if response.is_error:
            # Only provider limit responses carry a body worth classifying;
            # ordinary error pages and the URL stay out of the message
            message = f"HTTP {response.status_code} {response.reason_phrase}"
            if response.status_code in PLAN_LIMIT_STATUSES:
                message = f"{message}: {response.text[:200]}"
            raise RuntimeError(message)
        return response.text

    return fetch


async def report_progress(on_progress, stage, detail, percent):
    if on_progress is None:
        return
    result = on_progress(stage, detail, percent)
    if inspect.isawaitable(result):
        await result


async def scrape_one(fetcher, url):
    """Fetch one URL, re-raising plan-limit failures as ConcurrencyPlanError."""
    try:
        content = await fetcher(url)
    except ConcurrencyPlanError:
        raise
    except Exception as e:
        if is_plan_limit_error(e):
            raise ConcurrencyPlanError() from e
        raise
    return SourceDocument(url=url, content=content or "")


async def fetch_all(urls, limit=MAX_CONCURRENCY, fetcher=None, on_progress=None,
                    api_key=None):
    """Fetch every URL and return the documents that pass the length filter.

    Args:
        urls: candidate URLs, attempted at most once each
        limit: maximum fetches in flight; 1 means strictly sequential,
            in input order
        fetcher: async callable ``url -> text``; defaults to Jina Reader
        on_progress: optional callback(stage, detail, percent), sync or async
        api_key: optional Jina API key for the default fetcher

    Returns:
        List of SourceDocument. With limit > 1 the order is completion order.

    Raises:
        ConcurrencyPlanError: a fetch hit the provider's plan limit. No
            partial results are returned and remaining workers are cancelled.
    """
    urls = list(urls)
    if not urls:
        return []
    limit = max(1, int(limit))

    if fetcher is None:
        async with httpx.AsyncClient(timeout=SCRAPE_TIMEOUT) as client:
            return await _dispatch(urls, limit, make_jina_fetcher(client, api_key),
                                   on_progress)
    return await _dispatch(urls, limit, fetcher, on_progress)


async def _dispatch(urls, limit, fetcher, on_progress):
    total = len(urls)
    results = []
    done = 0

    async def attempt(url):
        nonlocal done
        try:
            doc = await scrape_one(fetcher, url)
        except ConcurrencyPlanError:
            logger.warning("Plan limit hit while scraping %s", url)
            raise
        except Exception as e:
            logger.warning("Failed to scrape %s: %s", url, e)
            outcome = "failed"
        else:
            if accept_document(doc):
                results.append(doc)
                outcome = "ok"
            else:
                logger.info("Dropping %s: only %d characters", url, len(doc.content))
                outcome = "too short"
        done += 1
        await report_progress(on_progress, "scraping", f"{url} ({outcome}, {done}/{total})",
                              done / total * 100)

    if limit == 1:
        for url in urls:
            await attempt(url)
        logger.info("Scraped %d/%d URLs sequentially", len(results), total)
        return results

    queue = asyncio.Queue()
    for url in urls:
        queue.put_nowait(url)

    async def worker():
        while True:
            try:
                url = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await attempt(url)

    workers = [asyncio.create_task(worker()) for _ in range(min(limit, total))]
    try:
        await asyncio.gather(*workers)
    finally:
        # A plan-limit failure fails the batch; stop the other workers
        pending = [task for task in workers if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if not results:
        logger.error("All %d scrapes failed or were too short", total)
    else:
        logger.info("Scraped %d/%d URLs with %d workers", len(results), total,
                    len(workers))
    return results
