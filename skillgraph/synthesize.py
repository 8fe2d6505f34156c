"""Ask the language model to turn scraped documents into a skill graph."""

import json
import logging

from .config import (
    DOC_TRUNCATE_CHARS,
    MIN_GRAPH_NODES,
    SYNTHESIS_MAX_TOKENS,
    SYNTHESIS_MODEL,
    SYNTHESIS_PROMPT,
    SYNTHESIS_TEMPERATURE,
)
from .errors import MalformedSynthesisOutput
from .models import parse_skill_graph

logger = logging.getLogger(__name__)


def format_sources(docs, max_chars=DOC_TRUNCATE_CHARS):
    """Join documents into one prompt section, truncating each."""
    return "\n\n---\n\n".join(
        f"## Source: {d.url}\n\n{d.content[:max_chars]}" for d in docs
    )


def generate_graph(topic, docs, client):
    """Synthesize a SkillGraph for ``topic`` from ``docs``.

    ``client`` is an OpenAI client. Raises MalformedSynthesisOutput when the
    reply is empty, not JSON, or has fewer than MIN_GRAPH_NODES nodes.
    API errors propagate to the caller.
    """
    response = client.chat.completions.create(
        model=SYNTHESIS_MODEL,
        messages=[
            {"role": "system", "content": SYNTHESIS_PROMPT},
            {
                "role": "user",
                "content": (
                    f"Topic: {topic}\n\nScraped documentation:\n\n"
                    f"{format_sources(docs)}\n\n"
                    "Respond with ONLY the JSON object, no other text."
                ),
            },
        ],
        response_format={"type": "json_object"},
        temperature=SYNTHESIS_TEMPERATURE,
        max_tokens=SYNTHESIS_MAX_TOKENS,
    )

    raw = response.choices[0].message.content if response.choices else None
    if not raw:
        raise MalformedSynthesisOutput("Empty response from the language model")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error("Synthesis reply for %r is not JSON: %s", topic, e)
        raise MalformedSynthesisOutput("Generated graph is not valid JSON") from e

    graph = parse_skill_graph(payload, topic, min_nodes=MIN_GRAPH_NODES)
    logger.info("Synthesized %d nodes for %r", len(graph.nodes), topic)
    return graph
