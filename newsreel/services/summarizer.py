"""Summarizer - writes a structured news brief from a research package."""

import re
from typing import Any, Optional

from pydantic import ValidationError

from newsreel.core.config import Settings
from newsreel.models.schemas import BriefSource, NewsBrief, RawNewsBrief, ResearchPackage, ResearchSource
from newsreel.services.llm_client import LLMClient, describe_validation_error
from newsreel.utils.error_handler import ValidationFailure
from newsreel.utils.text_utils import trim_to_max

MAX_WHAT_TO_WATCH = 4
MAX_BRIEF_SOURCES = 12
MAX_KEY_FACTS = 6
FALLBACK_SOURCES = 6
SOURCE_TEXT_CHARS = 700

_WATCH_SPLIT = re.compile(r"\n+|•|;|,|-")

BRIEF_SYSTEM_PROMPT = "\n".join(
    [
        "Task: using the research provided, write a short, skimmable news brief about the topic.",
        "Deliver maximum insight per word: authoritative, modern, trusted by professional readers.",
        "",
        "Rules:",
        "- Factual, neutral and grounded in the cited sources; prioritize what is new or changing.",
        "- Short paragraphs and compact sentences, plain text only, no emojis or markup.",
        "- Lead with the core development, then what happened, why it matters and what is driving it.",
        "- No hype, no calls to action, no predictions or invented statistics, quotes or attributions.",
        "- Synthesize; do not restate the research verbatim.",
        "",
        "Return JSON with keys:",
        "- headline: short descriptive label (max 80 chars)",
        "- lede: sharp lead, 1-2 sentences (max 220 chars)",
        "- why_it_matters: max 420 chars",
        "- key_facts: array of 3-5 strings describing what happened",
        "- the_big_picture: what is driving it (max 520 chars)",
        "- what_to_watch: optional array of 1-4 forward-looking strings",
        '- sources: array of objects {"title": str, "url": str, "outlet": str (optional)}',
    ]
)


def coerce_what_to_watch(value: Any) -> Optional[list[str]]:
    """Turn a list or delimited string into at most four non-empty items."""
    if not value:
        return None
    if isinstance(value, list):
        parts = [str(item).strip() for item in value if item is not None]
    else:
        parts = [part.strip() for part in _WATCH_SPLIT.split(str(value))]
    cleaned = [part for part in parts if part][:MAX_WHAT_TO_WATCH]
    return cleaned or None


def _is_http(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def _match_research_source(text: str, research: list[ResearchSource]) -> Optional[ResearchSource]:
    lowered = text.lower()
    for source in research:
        title = source.title.lower()
        if lowered in title or title in lowered or text in source.url or source.url in text:
            return source
    return None


def coerce_sources(raw: Any, research: list[ResearchSource]) -> list[BriefSource]:
    """
    Normalize cited sources into title/url records.

    Objects with a title and an http(s) url are kept; bare strings are
    matched against the research sources by title or URL containment, or
    accepted as-is when they are URLs. Anything else is dropped.
    """
    if not isinstance(raw, list):
        return []

    sources: list[BriefSource] = []
    for item in raw:
        if isinstance(item, dict):
            title = str(item.get("title") or "").strip()
            url = str(item.get("url") or "").strip()
            outlet = str(item.get("outlet") or "").strip() or None
            if title and url and _is_http(url):
                sources.append(BriefSource(title=title, url=url, outlet=outlet))
            continue

        text = item.strip() if isinstance(item, str) else ""
        if not text:
            continue
        match = _match_research_source(text, research)
        if match and _is_http(match.url):
            sources.append(BriefSource(title=match.title, url=match.url, outlet=match.outlet or None))
        elif _is_http(text):
            sources.append(BriefSource(title=text, url=text))

    return sources[:MAX_BRIEF_SOURCES]


def normalize_brief(raw: RawNewsBrief, package: ResearchPackage) -> NewsBrief:
    """
    Trim, coerce and strictly validate a raw brief.

    Raises:
        ValidationFailure: If the brief still violates the canonical limits
    """
    sources = coerce_sources(raw.sources, package.sources)
    if not sources:
        sources = [
            BriefSource(title=s.title, url=s.url, outlet=s.outlet or None)
            for s in package.sources[:FALLBACK_SOURCES]
            if s.title and _is_http(s.url)
        ]

    normalized = {
        "headline": trim_to_max(raw.headline, 80),
        "lede": trim_to_max(raw.lede, 220),
        "why_it_matters": trim_to_max(raw.why_it_matters, 420),
        "key_facts": [fact.strip() for fact in raw.key_facts if fact and fact.strip()][:MAX_KEY_FACTS],
        "the_big_picture": trim_to_max(raw.the_big_picture, 520),
        "what_to_watch": coerce_what_to_watch(raw.what_to_watch),
        "sources": [s.model_dump() for s in sources],
    }
    try:
        return NewsBrief.model_validate(normalized)
    except ValidationError as e:
        raise ValidationFailure(f"Brief for {package.topic!r} is invalid: {describe_validation_error(e)}") from e


class Summarizer:
    """Generates news briefs with the LLM."""

    def __init__(self, settings: Settings, logger: Any, llm_client: LLMClient):
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client

    def generate_brief(self, package: ResearchPackage) -> NewsBrief:
        """
        Write a brief for one topic.

        Args:
            package: Research package for the topic

        Returns:
            Normalized, validated brief

        Raises:
            ExternalServiceError: If the LLM call fails
            ValidationFailure: If the output cannot be normalized
        """
        user = f"Topic: {package.topic}\n\nSources:\n{self._format_sources(package)}"
        if package.notes:
            user += f"\n\nNotes: {package.notes}"

        raw = self.llm_client.complete_json(
            RawNewsBrief,
            system=BRIEF_SYSTEM_PROMPT,
            user=user,
            temperature=self.settings.summary_temperature,
        )
        brief = normalize_brief(raw, package)
        self.logger.info(f"Brief drafted: {brief.headline}")
        return brief

    @staticmethod
    def _format_sources(package: ResearchPackage) -> str:
        blocks = []
        for i, source in enumerate(package.sources, start=1):
            outlet = f" ({source.outlet})" if source.outlet else ""
            text = " ".join((source.excerpt or source.full_text or "")[:SOURCE_TEXT_CHARS].split())
            blocks.append(f"{i}. {source.title}{outlet}\n{source.url}\n{text}")
        return "\n\n".join(blocks)
