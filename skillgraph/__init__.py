"""skillgraph — Build interlinked skill graphs of markdown notes from a topic."""

from .config import MAX_CONCURRENCY, NODE_STYLES
from .errors import (
    ConcurrencyPlanError,
    EmptyResultSet,
    MalformedSynthesisOutput,
    NoSourcesFound,
    SkillGraphError,
)
from .graph import build_edges, build_render_nodes, prepare_viz_data
from .layout import ForceConfig, ForceSimulation, LayoutController
from .models import KnowledgeNode, SkillGraph, SourceDocument, parse_skill_graph
from .package import build_files, build_zip
from .pipeline import build_skill_graph, run_pipeline
from .scrape import accept_document, classify_error, fetch_all
from .visualize import generate_html

__all__ = [
    "MAX_CONCURRENCY",
    "NODE_STYLES",
    "ConcurrencyPlanError",
    "EmptyResultSet",
    "MalformedSynthesisOutput",
    "NoSourcesFound",
    "SkillGraphError",
    "build_edges",
    "build_render_nodes",
    "prepare_viz_data",
    "ForceConfig",
    "ForceSimulation",
    "LayoutController",
    "KnowledgeNode",
    "SkillGraph",
    "SourceDocument",
    "parse_skill_graph",
    "build_files",
    "build_zip",
    "build_skill_graph",
    "run_pipeline",
    "accept_document",
    "classify_error",
    "fetch_all",
    "generate_html",
]
