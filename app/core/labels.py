"""Case-insensitive label handling shared by poll options and to-do items."""

from typing import Iterable, List


def normalize_label(value: str) -> str:
    return value.strip().lower()


def clean_labels(values: Iterable[str]) -> List[str]:
    """Trim every label and drop the ones left empty."""
    return [v.strip() for v in values if v and v.strip()]


def has_duplicate_labels(values: Iterable[str]) -> bool:
    normalized = [normalize_label(v) for v in values]
    return len(set(normalized)) != len(normalized)


def unique_preserve_order(values: Iterable[str]) -> List[str]:
    """Collapse case-insensitive duplicates, keeping the first spelling seen and the original order."""
    seen = set()
    result = []
    for label in clean_labels(values):
        key = label.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(label)
    return result
