"""Research Service - merges web search results and stored articles per topic."""

from typing import Any, Optional

from newsreel.core.config import Settings
from newsreel.models.schemas import ResearchPackage, ResearchSource
from newsreel.services.web_search_client import ExaSearchClient
from newsreel.storage.repository import ContentRepository
from newsreel.utils.text_utils import normalize_url

RESEARCH_NOTES = (
    "This research package aggregates diverse sources. Summaries should separate "
    "verifiable facts from speculation and avoid loaded language."
)


class ResearchService:
    """Builds the deduplicated source list a brief is written from."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        search_client: ExaSearchClient,
        repository: ContentRepository,
    ):
        self.settings = settings
        self.logger = logger
        self.search_client = search_client
        self.repository = repository

    def build_research_package(
        self,
        topic: str,
        days: Optional[int] = None,
        num_results: Optional[int] = None,
        max_local_articles: Optional[int] = None,
        max_sources: Optional[int] = None,
    ) -> ResearchPackage:
        """
        Gather sources for a topic.

        Web results come first in search order, then the most recent stored
        articles (not filtered by topic). Sources are deduplicated by
        normalized URL and the list is capped.

        Args:
            topic: Topic to research
            days: Web search window (default: settings.research_days)
            num_results: Web results requested (default: settings.research_num_results)
            max_local_articles: Stored articles added (default: settings.research_max_local_articles)
            max_sources: Cap on the merged list (default: settings.research_max_sources)

        Returns:
            Research package for the topic

        Raises:
            ExternalServiceError: If web search fails
            StoreError: If stored articles cannot be read
        """
        days = days if days is not None else self.settings.research_days
        num_results = num_results if num_results is not None else self.settings.research_num_results
        max_local = max_local_articles if max_local_articles is not None else self.settings.research_max_local_articles
        cap = max_sources if max_sources is not None else self.settings.research_max_sources
        excerpt_chars = self.settings.research_excerpt_chars

        web_results = self.search_client.search_news(topic, days=days, num_results=num_results)
        articles = self.repository.recent_articles(max_local)

        merged: list[ResearchSource] = []
        seen: set[str] = set()

        for result in web_results:
            key = normalize_url(result.url)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(
                ResearchSource(
                    title=result.title,
                    url=result.url,
                    published_at=result.published_date,
                    excerpt=result.text[:excerpt_chars] if result.text else None,
                    full_text=result.text,
                )
            )

        for article in articles:
            key = normalize_url(article.content_url)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(
                ResearchSource(
                    title=article.headline,
                    url=article.content_url,
                    outlet=article.source,
                    published_at=article.published_at.isoformat() if article.published_at else None,
                    excerpt=article.full_text[:excerpt_chars] if article.full_text else None,
                    full_text=article.full_text,
                )
            )

        sources = merged[:cap]
        self.logger.debug(
            f"Research for {topic!r}: {len(web_results)} web + {len(articles)} stored -> {len(sources)} sources"
        )
        return ResearchPackage(topic=topic, sources=sources, notes=RESEARCH_NOTES)
