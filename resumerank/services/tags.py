"""
Tag palette and the set operations behind the bulk tag endpoint.

Tags are plain ``{"name": ..., "color": ...}`` dicts, the same shape stored in
the candidate's JSON column. Names compare case-insensitively everywhere.
"""
from typing import Dict, Iterable, List

TAG_COLORS: Dict[str, str] = {
    "blue": "#3b82f6",
    "green": "#10b981",
    "purple": "#8b5cf6",
    "teal": "#14b8a6",
    "red": "#ef4444",
    "amber": "#f59e0b",
    "pink": "#ec4899",
    "orange": "#f97316",
    "indigo": "#6366f1",
    "cyan": "#06b6d4",
}

SUGGESTED_TAGS: List[Dict[str, str]] = [
    {"name": "Senior", "color": TAG_COLORS["blue"]},
    {"name": "Junior", "color": TAG_COLORS["green"]},
    {"name": "Mid-Level", "color": TAG_COLORS["purple"]},
    {"name": "Remote", "color": TAG_COLORS["teal"]},
    {"name": "Urgent", "color": TAG_COLORS["red"]},
    {"name": "Top Candidate", "color": TAG_COLORS["amber"]},
    {"name": "Interview Ready", "color": TAG_COLORS["pink"]},
    {"name": "Follow Up", "color": TAG_COLORS["orange"]},
    {"name": "Referred", "color": TAG_COLORS["indigo"]},
    {"name": "Relocation", "color": TAG_COLORS["cyan"]},
]


def _key(tag: dict) -> str:
    return str(tag.get("name", "")).strip().lower()


def dedupe_tags(tags: Iterable[dict]) -> List[dict]:
    """First occurrence of each name wins."""
    seen = set()
    result = []
    for tag in tags:
        key = _key(tag)
        if key in seen:
            continue
        seen.add(key)
        result.append({"name": tag["name"], "color": tag["color"]})
    return result


def apply_tag_action(existing: List[dict], action: str, tags: List[dict]) -> List[dict]:
    if action == "add":
        return dedupe_tags(list(existing or []) + list(tags))
    if action == "remove":
        removal = {_key(tag) for tag in tags}
        return [tag for tag in (existing or []) if _key(tag) not in removal]
    if action == "replace":
        return dedupe_tags(tags)
    raise ValueError(f"Unknown tag action: {action}")


def unique_tags(tag_sets: Iterable[List[dict]]) -> List[dict]:
    """Every distinct tag across the given sets, sorted by name."""
    merged = dedupe_tags(tag for tags in tag_sets for tag in (tags or []))
    return sorted(merged, key=lambda tag: tag["name"].lower())
