"""
Title normalization helpers.

Franchise keys collapse sequels, seasons and split cours onto one base name,
e.g. "Naruto: Shippuden" -> "naruto",
"Attack on Titan Season 3 Part 2" -> "attack on titan".
"""
from typing import Any, Dict, Iterable, List

# Applied in order; the text before the first occurrence of each is kept.
SUBTITLE_SEPARATORS = (":", " - ", " Season", " Part")


def extract_franchise(title: str) -> str:
    if not title:
        return ""
    base = title
    for separator in SUBTITLE_SEPARATORS:
        base = base.split(separator)[0]
    return base.strip().lower()


def short_title(title: str) -> str:
    """Title up to the first colon, used in human-readable reasons."""
    if not title:
        return ""
    return title.split(":")[0].strip()


def deduplicate_by_franchise(items: Iterable[Any], max_per_franchise: int = 1) -> List[Any]:
    """Keep at most `max_per_franchise` items per franchise, preserving input order.

    Items may be dicts or objects exposing a `title` attribute.
    """
    counts: Dict[str, int] = {}
    result = []
    for item in items:
        title = item.get("title") if isinstance(item, dict) else getattr(item, "title", "")
        franchise = extract_franchise(title or "")
        counts[franchise] = counts.get(franchise, 0) + 1
        if counts[franchise] <= max_per_franchise:
            result.append(item)
    return result
