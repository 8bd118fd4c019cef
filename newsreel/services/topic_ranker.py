"""Topic Ranker - picks which preferences get a video in this job."""

from newsreel.models.schemas import Preference


def pick_top_topics(preferences: list[Preference], max_topics: int = 5) -> list[Preference]:
    """
    Pick up to max_topics preferences, balancing priority and category diversity.

    Preferences are taken in descending priority (stable for ties). A
    preference whose category was already picked is skipped while fewer than
    max(1, max_topics - 1) topics are chosen, so the last slot may repeat a
    category. Remaining slots are then backfilled with any preference whose
    topic is not already picked.

    Args:
        preferences: Weighted preferences of one owner
        max_topics: Maximum number of topics to return

    Returns:
        Ordered selection; empty when there are no preferences
    """
    if max_topics <= 0:
        return []

    ranked = sorted(preferences, key=lambda p: p.priority, reverse=True)
    picked: list[Preference] = []
    used_categories: set[str] = set()
    diversity_floor = max(1, max_topics - 1)

    for pref in ranked:
        if len(picked) >= max_topics:
            break
        category = (pref.category or "").strip().lower()
        if category and category in used_categories and len(picked) < diversity_floor:
            continue
        picked.append(pref)
        if category:
            used_categories.add(category)

    for pref in ranked:
        if len(picked) >= max_topics:
            break
        if any(p.topic == pref.topic for p in picked):
            continue
        picked.append(pref)

    return picked
