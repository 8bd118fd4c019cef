"""Text utilities for trimming, URL normalization and voiceover chunking."""

from urllib.parse import urlsplit, urlunsplit

_SENTENCE_ENDERS = (". ", "! ", "? ", ".\n", "!\n", "?\n")


def trim_to_max(text: str, max_chars: int) -> str:
    """
    Trim text to at most max_chars, ending in an ellipsis when cut.

    Args:
        text: Text to trim (surrounding whitespace is removed first)
        max_chars: Maximum length of the result

    Returns:
        Trimmed text
    """
    text = (text or "").strip()
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - 1)].rstrip() + "…"


def normalize_url(url: str) -> str:
    """
    Normalize an article URL: drop the fragment and utm_* tracking params.

    Unparseable input is returned stripped but otherwise unchanged.
    """
    url = (url or "").strip()
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    params = [p for p in parts.query.split("&") if p and not p.split("=", 1)[0].lower().startswith("utm_")]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(params), ""))


def split_voiceover_into_chunks(text: str, max_len: int = 115) -> list[str]:
    """
    Split a voiceover into chunks no longer than max_len characters.

    Break points are chosen in order of preference: the last sentence end
    within the limit, a comma past 40% of the limit, the last space, and
    finally a hard cut at max_len.

    Args:
        text: Voiceover text
        max_len: Maximum characters per chunk

    Returns:
        Non-empty chunks in reading order

    Raises:
        ValueError: If max_len is less than 1
    """
    if max_len < 1:
        raise ValueError(f"max_len must be at least 1, got {max_len}")

    chunks: list[str] = []
    remaining = (text or "").strip()

    while remaining:
        if len(remaining) <= max_len:
            chunks.append(remaining)
            break

        split_idx = -1
        for ender in _SENTENCE_ENDERS:
            # The punctuation must land inside the limit.
            idx = remaining.rfind(ender, 0, max_len)
            if idx > 0:
                split_idx = max(split_idx, idx)

        if split_idx <= 0:
            comma_idx = remaining.rfind(", ", 0, max_len)
            if comma_idx > max_len * 0.4:
                split_idx = comma_idx
            else:
                split_idx = remaining.rfind(" ", 0, max_len + 1)
                if split_idx <= 0:
                    split_idx = max_len - 1

        chunk = remaining[: split_idx + 1].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[split_idx + 1 :].strip()

    return chunks

