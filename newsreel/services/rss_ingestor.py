"""RSS Ingestor - pulls configured feeds into the article store."""

import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional, Union

import requests
from bs4 import BeautifulSoup

from newsreel.core.config import FeedSource, Settings
from newsreel.models.schemas import Article, FeedError, IngestResult
from newsreel.storage.repository import ContentRepository
from newsreel.utils.error_handler import StoreError
from newsreel.utils.text_utils import normalize_url

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)

_FETCH_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml",
}

_ATOM_NS = "{http://www.w3.org/2005/Atom}"
MIN_FULL_TEXT_CHARS = 200
MAX_SAMPLE_HEADLINES = 12


def parse_published(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822 (RSS) or ISO 8601 (Atom) timestamp; None if unparseable."""
    if not value:
        return None
    value = value.strip()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_feed(xml_data: Union[str, bytes]) -> list[dict]:
    """
    Parse RSS 2.0 or Atom XML into item dicts with title, link and published.

    Raises:
        ET.ParseError: If the document is not well-formed XML
    """
    root = ET.fromstring(xml_data)
    items: list[dict] = []

    for item in root.iter("item"):
        items.append(
            {
                "title": (item.findtext("title") or "").strip(),
                "link": (item.findtext("link") or "").strip(),
                "published": item.findtext("pubDate"),
            }
        )

    for entry in root.iter(f"{_ATOM_NS}entry"):
        link = ""
        for link_el in entry.findall(f"{_ATOM_NS}link"):
            if link_el.get("rel", "alternate") == "alternate":
                link = link_el.get("href", "")
                break
        items.append(
            {
                "title": (entry.findtext(f"{_ATOM_NS}title") or "").strip(),
                "link": link.strip(),
                "published": entry.findtext(f"{_ATOM_NS}published") or entry.findtext(f"{_ATOM_NS}updated"),
            }
        )

    return items


def extract_article_text(html: str) -> Optional[str]:
    """Extract readable body text from an article page; None if too short."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "header", "footer", "nav", "aside", "form"]):
        tag.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    paragraphs = [p.get_text(" ", strip=True) for p in container.find_all("p")]
    text = "\n".join(p for p in paragraphs if p)
    if not text:
        text = container.get_text("\n", strip=True)
    text = re.sub(r"[ \t]+", " ", text).strip()
    return text if len(text) > MIN_FULL_TEXT_CHARS else None


class RssIngestor:
    """Fetches RSS/Atom feeds and upserts their items as articles."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        repository: ContentRepository,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize RSS ingestor.

        Args:
            settings: Application settings
            logger: Logger instance
            repository: Article store
            http: Optional HTTP session (defaults to a new requests.Session)
        """
        self.settings = settings
        self.logger = logger
        self.repository = repository
        self.http = http or requests.Session()

    def ingest(
        self,
        feeds: Optional[list[FeedSource]] = None,
        max_items_per_feed: Optional[int] = None,
        fetch_full_text: Optional[bool] = None,
    ) -> IngestResult:
        """
        Ingest every feed; a failing feed is recorded and skipped.

        Args:
            feeds: Feeds to read (default: settings.rss_feeds)
            max_items_per_feed: Items taken from each feed (default: settings.max_items_per_feed)
            fetch_full_text: Whether to download article pages (default: settings.fetch_full_text)

        Returns:
            Count of stored articles, per-feed errors and sample headlines
        """
        feeds = feeds if feeds is not None else self.settings.rss_feeds
        max_items = max_items_per_feed if max_items_per_feed is not None else self.settings.max_items_per_feed
        full_text = fetch_full_text if fetch_full_text is not None else self.settings.fetch_full_text

        result = IngestResult()
        for feed in feeds:
            try:
                items = self._fetch_feed(feed)[:max_items]
            except (requests.RequestException, ET.ParseError) as e:
                self.logger.warning(f"Feed {feed.name} failed: {e}")
                result.errors.append(FeedError(feed=feed.name, error=str(e)))
                continue

            for item in items:
                title = item["title"]
                link = normalize_url(item["link"]) if item["link"] else ""
                if not title or not link:
                    continue

                article = Article(
                    headline=title,
                    content_url=link,
                    source=feed.name,
                    published_at=parse_published(item["published"]),
                    full_text=self._fetch_full_text(link) if full_text else None,
                )
                try:
                    self.repository.upsert_article(article)
                except StoreError as e:
                    self.logger.warning(f"Skipping article {link}: {e}")
                    continue

                result.inserted_or_updated += 1
                if len(result.sample_headlines) < MAX_SAMPLE_HEADLINES:
                    result.sample_headlines.append(f"{feed.name}: {title}")

        self.logger.info(f"Ingested {result.inserted_or_updated} articles from {len(feeds)} feeds ({len(result.errors)} errors)")
        return result

    def _fetch_feed(self, feed: FeedSource) -> list[dict]:
        response = self.http.get(
            feed.url,
            headers={"User-Agent": USER_AGENT},
            timeout=self.settings.http_timeout_seconds,
        )
        response.raise_for_status()
        return parse_feed(response.content)

    def _fetch_full_text(self, url: str) -> Optional[str]:
        """Best effort; any failure leaves the article without full text."""
        try:
            response = self.http.get(url, headers=_FETCH_HEADERS, timeout=self.settings.http_timeout_seconds)
            if not response.ok:
                return None
            return extract_article_text(response.text)
        except requests.RequestException as e:
            self.logger.debug(f"Full text unavailable for {url}: {e}")
            return None
