"""Exceptions raised by the skill graph pipeline."""

from .config import PLAN_LIMIT_MESSAGE


class SkillGraphError(Exception):
    """Base class for pipeline failures the web app reports to the user."""

    kind = "error"


class ConcurrencyPlanError(SkillGraphError):
    """The scraping provider refused a session because of a plan limit.

    Fatal to the whole batch. Carries a fixed, actionable message.
    """

    kind = "plan_limit"

    def __init__(self, message=PLAN_LIMIT_MESSAGE):
        super().__init__(message)


class NoSourcesFound(SkillGraphError):
    """Discovery returned no candidate URLs for the topic."""

    kind = "no_sources"


class EmptyResultSet(SkillGraphError):
    """Every URL failed or was filtered out, leaving no documents."""

    kind = "empty_result"


class MalformedSynthesisOutput(SkillGraphError):
    """The language model returned a graph that fails validation."""

    kind = "malformed_output"
