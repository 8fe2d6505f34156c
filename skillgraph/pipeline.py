"""End-to-end topic -> skill graph pipeline."""

import asyncio
import logging

from .config import MAX_CONCURRENCY, PIPELINE_TIMEOUT_SECONDS
from .discover import search_docs
from .errors import EmptyResultSet, NoSourcesFound
from .package import build_files
from .scrape import fetch_all, report_progress
from .synthesize import generate_graph

logger = logging.getLogger(__name__)


async def build_skill_graph(topic, openai_client, on_progress=None,
                            limit=MAX_CONCURRENCY, fetcher=None, search=search_docs):
    """Discover, scrape and synthesize a skill graph for ``topic``.

    Progress is reported as (stage, detail, percent) with stages
    "searching", "scraping" and "synthesizing"; percent covers the whole run.

    Returns:
        (graph, files) where files is the list from package.build_files().

    Raises:
        NoSourcesFound, EmptyResultSet, ConcurrencyPlanError,
        MalformedSynthesisOutput.
    """
    topic = topic.strip()

    await report_progress(on_progress, "searching", f"Searching for {topic}...", 0)
    urls = await search(topic)
    if not urls:
        raise NoSourcesFound("No documentation found for this topic")
    await report_progress(on_progress, "searching", f"Found {len(urls)} sources", 10)

    async def scrape_progress(stage, detail, percent):
        await report_progress(on_progress, stage, detail, 10 + percent * 0.5)

    docs = await fetch_all(urls, limit=limit, fetcher=fetcher, on_progress=scrape_progress)
    if not docs:
        raise EmptyResultSet("Failed to scrape any documentation")

    await report_progress(on_progress, "synthesizing", f"Writing notes from {len(docs)} sources...", 60)
    graph = await asyncio.to_thread(generate_graph, topic, docs, openai_client)
    await report_progress(on_progress, "synthesizing", "Complete", 100)

    files = build_files(graph)
    logger.info("Built skill graph for %r from %d/%d sources", topic, len(docs), len(urls))
    return graph, files


async def run_pipeline(topic, openai_client, timeout=PIPELINE_TIMEOUT_SECONDS, **kwargs):
    """build_skill_graph() under an overall wall-clock budget.

    Raises asyncio.TimeoutError when the budget is exceeded.
    """
    return await asyncio.wait_for(
        build_skill_graph(topic, openai_client, **kwargs), timeout=timeout
    )
