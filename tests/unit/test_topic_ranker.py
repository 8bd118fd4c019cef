"""Tests for topic ranking."""

from newsreel.models.schemas import Preference
from newsreel.services.topic_ranker import pick_top_topics


def _pref(topic, category=None, priority=5):
    return Preference(topic=topic, category=category, priority=priority)


def test_picks_highest_priority_first():
    """Test selection follows descending priority."""
    prefs = [_pref("Sports", "sports", 3), _pref("AI policy", "tech", 9), _pref("Markets", "business", 6)]

    picked = pick_top_topics(prefs, max_topics=3)

    assert [p.topic for p in picked] == ["AI policy", "Markets", "Sports"]


def test_ties_keep_input_order():
    """Test equal priorities keep their original order."""
    prefs = [_pref("A", "x", 5), _pref("B", "y", 5), _pref("C", "z", 5)]

    picked = pick_top_topics(prefs, max_topics=2)

    assert [p.topic for p in picked] == ["A", "B"]


def test_repeated_category_skipped_until_last_slot():
    """Test category diversity applies while fewer than max-1 topics are picked."""
    prefs = [
        _pref("AI policy", "tech", 10),
        _pref("Chips", "tech", 9),
        _pref("Elections", "politics", 8),
        _pref("Climate", "science", 7),
    ]

    picked = pick_top_topics(prefs, max_topics=3)

    assert [p.topic for p in picked] == ["AI policy", "Elections", "Climate"]


def test_backfills_when_categories_run_out():
    """Test remaining slots are backfilled from skipped preferences."""
    prefs = [_pref("AI policy", "tech", 10), _pref("Chips", "tech", 9), _pref("Robots", "tech", 8)]

    picked = pick_top_topics(prefs, max_topics=3)

    assert [p.topic for p in picked] == ["AI policy", "Chips", "Robots"]


def test_fewer_preferences_than_max():
    """Test every preference is returned when there are fewer than max."""
    prefs = [_pref("AI policy", "tech"), _pref("Chips", "tech")]

    assert len(pick_top_topics(prefs, max_topics=5)) == 2


def test_empty_and_zero_max():
    """Test empty input and non-positive max return nothing."""
    assert pick_top_topics([], max_topics=5) == []
    assert pick_top_topics([_pref("AI policy")], max_topics=0) == []


def test_uncategorized_preferences_never_skipped():
    """Test preferences without a category do not trigger diversity skips."""
    prefs = [_pref("A", None, 9), _pref("B", None, 8), _pref("C", None, 7)]

    assert [p.topic for p in pick_top_topics(prefs, max_topics=3)] == ["A", "B", "C"]
