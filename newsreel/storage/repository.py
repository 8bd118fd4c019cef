"""Storage repository for articles, preferences and produced content."""

from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from newsreel.models.schemas import Article, ContentItem, NewsBrief, Preference
from newsreel.storage.database import (
    ArticleRecord,
    ContentRecord,
    Database,
    PreferenceRecord,
    SummaryRecord,
    VideoRecord,
    as_utc,
    new_id,
    utcnow,
)
from newsreel.utils.error_handler import StoreError


class ContentRepository:
    """Repository for everything the pipeline reads and writes besides jobs."""

    def __init__(self, database: Database, logger: Any):
        """
        Initialize the repository.

        Args:
            database: Database holding the content tables
            logger: Logger instance
        """
        self.database = database
        self.logger = logger

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def upsert_article(self, article: Article) -> None:
        """
        Insert or update an article keyed by its content URL.

        Args:
            article: Article to store
        """
        try:
            with self.database.session() as session:
                record = session.scalars(
                    select(ArticleRecord).where(ArticleRecord.content_url == article.content_url)
                ).first()
                if record is None:
                    record = ArticleRecord(content_url=article.content_url, created_at=utcnow())
                    session.add(record)
                record.headline = article.headline
                record.source = article.source
                record.published_at = article.published_at
                if article.full_text or record.full_text is None:
                    record.full_text = article.full_text
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store article {article.content_url}: {e}") from e

    def recent_articles(self, limit: int) -> list[Article]:
        """Return stored articles, most recently published first."""
        stmt = (
            select(ArticleRecord)
            .order_by(ArticleRecord.published_at.desc().nulls_last(), ArticleRecord.id.desc())
            .limit(limit)
        )
        try:
            with self.database.session() as session:
                return [
                    Article(
                        headline=r.headline,
                        content_url=r.content_url,
                        source=r.source,
                        published_at=as_utc(r.published_at),
                        full_text=r.full_text,
                    )
                    for r in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load articles: {e}") from e

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def list_preferences(self, owner: str) -> list[Preference]:
        stmt = select(PreferenceRecord).where(PreferenceRecord.owner == owner).order_by(PreferenceRecord.id)
        try:
            with self.database.session() as session:
                return [
                    Preference(
                        topic=r.topic,
                        category=r.category,
                        geographic_scope=r.geographic_scope,
                        priority=r.priority,
                    )
                    for r in session.scalars(stmt)
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load preferences for {owner}: {e}") from e

    def replace_preferences(self, owner: str, preferences: list[Preference]) -> None:
        """Replace all stored preferences of an owner."""
        try:
            with self.database.session() as session:
                session.execute(delete(PreferenceRecord).where(PreferenceRecord.owner == owner))
                session.add_all(
                    PreferenceRecord(
                        owner=owner,
                        topic=p.topic,
                        category=p.category,
                        geographic_scope=p.geographic_scope,
                        priority=p.priority,
                    )
                    for p in preferences
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store preferences for {owner}: {e}") from e
        self.logger.info(f"Stored {len(preferences)} preferences for {owner}")

    # ------------------------------------------------------------------
    # Produced content
    # ------------------------------------------------------------------

    def save_summary(self, topic: str, brief: NewsBrief) -> str:
        """Persist a news brief; returns the summary id."""
        record = SummaryRecord(id=new_id(), topic=topic, brief=brief.model_dump(mode="json"), created_at=utcnow())
        try:
            with self.database.session() as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store summary for {topic}: {e}") from e
        return record.id

    def save_video(
        self,
        summary_id: str,
        video_url: str,
        thumbnail_url: Optional[str],
        duration: Optional[int],
        script: Optional[str],
    ) -> str:
        """Persist a video record; returns the video id."""
        record = VideoRecord(
            id=new_id(),
            summary_id=summary_id,
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            duration=duration,
            script=script,
            created_at=utcnow(),
        )
        try:
            with self.database.session() as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store video for summary {summary_id}: {e}") from e
        return record.id

    def save_user_content(self, owner: str, video_id: str) -> str:
        """Deliver a video to an owner's feed; returns the content id."""
        record = ContentRecord(
            id=new_id(),
            owner=owner,
            video_id=video_id,
            viewed=False,
            view_duration=0,
            liked=False,
            created_at=utcnow(),
        )
        try:
            with self.database.session() as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to deliver video {video_id} to {owner}: {e}") from e
        return record.id

    def list_content(self, owner: str, limit: int = 50) -> list[ContentItem]:
        """Return an owner's delivered videos, most recent first."""
        stmt = (
            select(ContentRecord, VideoRecord, SummaryRecord)
            .join(VideoRecord, ContentRecord.video_id == VideoRecord.id)
            .join(SummaryRecord, VideoRecord.summary_id == SummaryRecord.id, isouter=True)
            .where(ContentRecord.owner == owner)
            .order_by(ContentRecord.created_at.desc(), ContentRecord.id.desc())
            .limit(limit)
        )
        try:
            with self.database.session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load content for {owner}: {e}") from e

        return [
            ContentItem(
                id=content.id,
                video_id=video.id,
                video_url=video.video_url,
                thumbnail_url=video.thumbnail_url,
                duration=video.duration,
                script=video.script,
                brief=summary.brief if summary else None,
                viewed=content.viewed,
                view_duration=content.view_duration,
                liked=content.liked,
                created_at=as_utc(content.created_at),
            )
            for content, video, summary in rows
        ]
