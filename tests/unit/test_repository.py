"""Tests for the content repository."""

from datetime import datetime, timezone

from newsreel.models.schemas import Article, BriefSource, NewsBrief, Preference


def _brief(headline="EU agrees AI rules"):
    return NewsBrief(
        headline=headline,
        lede="Lawmakers reached a deal.",
        why_it_matters="It sets global norms.",
        key_facts=["Fact one", "Fact two", "Fact three"],
        the_big_picture="Regulation is catching up.",
        sources=[BriefSource(title="Reuters", url="https://reuters.com/a")],
    )


def test_upsert_article_inserts_then_updates(repository):
    """Test articles are keyed by content URL."""
    url = "https://example.com/a"
    repository.upsert_article(Article(headline="Old", content_url=url, source="BBC", full_text="Body"))
    repository.upsert_article(Article(headline="New", content_url=url, source="BBC"))

    articles = repository.recent_articles(10)

    assert len(articles) == 1
    assert articles[0].headline == "New"
    assert articles[0].full_text == "Body"


def test_recent_articles_newest_first(repository):
    """Test recent articles are ordered by publication time, undated last."""
    repository.upsert_article(Article(headline="Undated", content_url="https://e.com/u", source="AP"))
    repository.upsert_article(
        Article(
            headline="Older",
            content_url="https://e.com/o",
            source="AP",
            published_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )
    repository.upsert_article(
        Article(
            headline="Newer",
            content_url="https://e.com/n",
            source="AP",
            published_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )
    )

    assert [a.headline for a in repository.recent_articles(10)] == ["Newer", "Older", "Undated"]
    assert len(repository.recent_articles(2)) == 2


def test_replace_preferences(repository):
    """Test preferences are replaced as a set per owner."""
    repository.replace_preferences("user-1", [Preference(topic="AI policy", category="tech", priority=9)])
    repository.replace_preferences("user-1", [Preference(topic="Markets"), Preference(topic="Climate")])
    repository.replace_preferences("user-2", [Preference(topic="Sports")])

    assert [p.topic for p in repository.list_preferences("user-1")] == ["Markets", "Climate"]
    assert repository.list_preferences("nobody") == []


def test_content_feed_joins_video_and_brief(repository):
    """Test delivered content carries video and brief details, newest first."""
    summary_id = repository.save_summary("AI policy", _brief())
    first_video = repository.save_video(summary_id, "https://cdn/v1.mp4", "https://cdn/v1.png", 25, "Voiceover one")
    repository.save_user_content("user-1", first_video)
    second_video = repository.save_video(summary_id, "https://cdn/v2.mp4", None, None, None)
    repository.save_user_content("user-1", second_video)

    items = repository.list_content("user-1")

    assert [item.video_url for item in items] == ["https://cdn/v2.mp4", "https://cdn/v1.mp4"]
    assert items[1].duration == 25
    assert items[1].script == "Voiceover one"
    assert items[1].brief["headline"] == "EU agrees AI rules"
    assert items[1].viewed is False
    assert repository.list_content("user-2") == []
