"""Configuration constants for the skill graph pipeline."""

import logging
import os

logger = logging.getLogger(__name__)


def parse_max_concurrency(raw):
    """Parse the scraper concurrency ceiling, falling back to 1.

    Anything that is not a positive integer (unset, empty, garbage, 0,
    negative) yields 1, which is safe on single-browser plans. Decimal
    strings count as garbage: "3.5" yields 1, not 3.
    """
    if raw is None:
        return 1
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring non-numeric SCRAPER_MAX_CONCURRENCY=%r", raw)
        return 1
    return max(1, value)


# Read once at import. Raise it only on plans that allow parallel sessions.
MAX_CONCURRENCY = parse_max_concurrency(os.environ.get("SCRAPER_MAX_CONCURRENCY"))

# Scraping
JINA_READER_URL = "https://r.jina.ai/"
SCRAPE_TIMEOUT = 60.0
MIN_DOCUMENT_LENGTH = 100

# Substrings (lower-case) that mark a provider concurrency / plan failure
PLAN_LIMIT_MARKERS = (
    "concurrent",
    "concurrency",
    "session limit",
    "too many",
    "rate limit",
    "upgrade",
    "plan",
)

# Provider limit responses; only their bodies are worth classifying
PLAN_LIMIT_STATUSES = (402, 429)

PLAN_LIMIT_MESSAGE = (
    "Your scraping plan only supports 1 concurrent browser. "
    "The app is running in sequential mode, but multiple scrapes still "
    "exceeded the limit. Upgrade your plan to unlock parallel execution."
)
UPGRADE_URL = "https://jina.ai/reader"
PLAN_LIMIT_HINT = (
    "Set SCRAPER_MAX_CONCURRENCY=1 in your environment (it is already the "
    "default) and ensure no other requests are running simultaneously."
)

# Discovery
SERPER_SEARCH_URL = "https://google.serper.dev/search"
MAX_SEARCH_RESULTS = 8

# Synthesis
SYNTHESIS_MODEL = "gpt-4o-mini"
SYNTHESIS_MAX_TOKENS = 8192
SYNTHESIS_TEMPERATURE = 0.7
DOC_TRUNCATE_CHARS = 4000
MIN_GRAPH_NODES = 3

# Whole topic -> graph budget, seconds
PIPELINE_TIMEOUT_SECONDS = 60

SYNTHESIS_PROMPT = """You are a domain knowledge graph architect. Given a topic and source material, produce a deeply interconnected JSON skill graph that lets an agent UNDERSTAND the domain, not merely summarize it.

Output format (JSON only):
{
  "topic": "the topic",
  "nodes": [
    {
      "id": "kebab-case-id",
      "label": "Human Readable Label",
      "type": "moc" | "concept" | "pattern" | "gotcha",
      "description": "One-sentence description the agent can scan to decide whether to read the full file",
      "content": "Full markdown content with [[wikilinks]] woven into prose",
      "links": ["other-node-id"]
    }
  ]
}

Node types:
- "moc": exactly 1 per graph; the Map of Content and traversal entry point
- "concept": a foundational idea, theory, or framework in the domain
- "pattern": a reusable approach, technique, or methodology
- "gotcha": a counterintuitive finding, failure mode, or common mistake

Rules:
- Generate 12-18 nodes total
- Exactly 1 node must be type "moc"
- Every [[wikilink]] must sit inside a prose sentence that explains why to follow it
- The "links" array must list every node ID referenced via [[wikilinks]] in the content
- Every non-moc node must begin with YAML frontmatter (title, type, description)
- Node IDs must be kebab-case
- The moc opens with a short domain overview, then a "## Domain Clusters" section and a "## Explorations Needed" section with 2-3 open questions"""

# Node kinds: wire value from the model -> canonical kind
# Node ids become file names inside the zip: lower-case kebab-case only
NODE_ID_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

KIND_ALIASES = {
    "moc": "hub",
    "hub": "hub",
    "concept": "concept",
    "pattern": "pattern",
    "gotcha": "gotcha",
}
DEFAULT_KIND = "concept"

NODE_BASE_SIZES = {
    "hub": 8,
    "concept": 5,
    "pattern": 4,
    "gotcha": 3,
}
MAX_REF_WEIGHT = 4
REF_WEIGHT_STEP = 0.5

NODE_STYLES = {
    "hub": {"fill": "#18181b", "stroke": "#000000", "stroke_width": 0, "label": "MOC"},
    "concept": {"fill": "#27272a", "stroke": "#000000", "stroke_width": 0, "label": "Concept"},
    "pattern": {"fill": "#52525b", "stroke": "#000000", "stroke_width": 0, "label": "Pattern"},
    "gotcha": {"fill": "#ffffff", "stroke": "#d4d4d8", "stroke_width": 1.5, "label": "Gotcha"},
}

# Force layout
CHARGE_STRENGTH = -350
CHARGE_DISTANCE_MAX = 500
LINK_DISTANCE = 90
HUB_LINK_DISTANCE = 180
ALPHA_DECAY = 0.04
ALPHA_MIN = 0.001
VELOCITY_DECAY = 0.2
COOLDOWN_TICKS = 100
FIT_DURATION_MS = 400
FIT_PADDING = 60
FIT_DELAY_MS = 500
NODE_RADIUS_SCALE = 3.5
