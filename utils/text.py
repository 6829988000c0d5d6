# utils/text.py
import re
import unicodedata
from typing import Iterable, List

MENTION_RE = re.compile(r"@(\w+)")
HASHTAG_RE = re.compile(r"#(\w+)")


def slugify(s: str, fallback: str = "topico") -> str:
    """Lowercase, drop diacritics, collapse non [a-z0-9] runs to '-', trim '-'."""
    s = unicodedata.normalize("NFD", (s or "").lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = s.strip("-")
    return s or fallback


def unique(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def extract_mentions(text: str) -> List[str]:
    return unique(MENTION_RE.findall(text or ""))


def extract_hashtags(text: str) -> List[str]:
    return unique(h.lower() for h in HASHTAG_RE.findall(text or ""))


def normalize_tags(tags: Iterable[str]) -> List[str]:
    return unique((t or "").strip().lstrip("#").strip().lower() for t in tags)
