"""
Query expansion and keyword relevance scoring.

This is plain keyword overlap over product titles, weighted by a handful of
domain synonym groups. Sterile items weigh the most, ahead of courses and
kits.
"""

import re
from typing import Literal

from models import Product

# Group key -> phrases that count as a mention of it
SYNONYMS: dict[str, list[str]] = {
    "tragus": ["tragus"],
    "daith": ["daith"],
    "septum": ["septum", "bull ring", "bullring"],
    "nose": ["nose", "nostril", "stud", "hoop"],
    "labret": ["labret", "monroe"],
    "eyebrow": ["eyebrow", "brow"],
    "tongue": ["tongue", "barbell"],
    "ring": ["ring", "captive", "captive bead", "cbr", "segment"],
    "barbell": ["barbell", "straight barbell", "curved barbell", "banana"],
    "sterile": ["sterile", "sterilized", "pre-sterilized", "pre sterilized", "sterilization"],
    "kit": ["kit", "piercing kit", "ear piercing kit", "ear kit", "ear-piercing kit", "professional kit"],
    "course": ["course", "training", "class", "apprentice", "certification", "master class"],
}

_GAUGE_RE = re.compile(r"\b(10|12|14|16|18|20|22|8|6)\s*g\b", re.IGNORECASE)
_KIT_RE = re.compile(r"kit\b", re.IGNORECASE)
_STERILE_RE = re.compile(r"steril", re.IGNORECASE)
_COURSE_RE = re.compile(r"course|training|class", re.IGNORECASE)
_AVAILABILITY_ASK_RE = re.compile(
    r"(out of stock|sold out|back.?in stock|restock|available|availability|in stock)", re.IGNORECASE
)
_WORD_SPLIT_RE = re.compile(r"\W+")

OUT_OF_STOCK_PENALTY = 100.0
DIRECT_ASK_MIN_OVERLAP = 3

OutOfStockPolicy = Literal["exclude", "penalize", "keep"]


def parse_gauge(query: str) -> str | None:
    """'16g' / '16 G' -> '16'."""
    match = _GAUGE_RE.search(query)
    return match.group(1) if match else None


def matched_groups(text: str) -> list[str]:
    lowered = text.lower()
    return [key for key, phrases in SYNONYMS.items() if any(p in lowered for p in phrases)]


def expand(query: str) -> str:
    """Append synonym-group keys and a normalized gauge token to the query.

    The result feeds the storefront's own keyword search, which only matches
    literal words.
    """
    extra = matched_groups(query)
    gauge = parse_gauge(query)
    if gauge:
        extra.append(f"{gauge}g")
    return f"{query} {' '.join(extra)}".strip()


def score(query: str, product: Product) -> float:
    title = product.title.lower()
    q = query.lower()
    total = 0.0

    for word in q.split():
        if word in title:
            total += 1
    for phrases in SYNONYMS.values():
        if any(p in q and p in title for p in phrases):
            total += 2

    gauge = parse_gauge(query)
    if gauge and f"{gauge}g" in title:
        total += 3
    if _KIT_RE.search(q) and _KIT_RE.search(title):
        total += 4
    if _STERILE_RE.search(q) and _STERILE_RE.search(title):
        total += 6
    if _COURSE_RE.search(q) and _COURSE_RE.search(title):
        total += 5
    return total


def _promoted(product: Product, promote_first: list[str]) -> bool:
    title = product.title.lower()
    return any(p and (p in product.url or p.lower() in title) for p in promote_first)


def rank(
    query: str,
    products: list[Product],
    out_of_stock: OutOfStockPolicy = "exclude",
    promote_first: list[str] | None = None,
) -> list[Product]:
    """Score and order products for one query.

    Sorting is stable, so equal scores keep discovery order. Products named in
    ``promote_first`` (by URL or title substring) go ahead of the rest.
    """
    promote_first = promote_first or []
    ranked: list[Product] = []
    for product in products:
        if out_of_stock == "exclude" and product.instock is False:
            continue
        value = score(query, product)
        if out_of_stock == "penalize" and product.instock is False:
            value -= OUT_OF_STOCK_PENALTY
        ranked.append(product.model_copy(update={"score": value}))

    ranked.sort(key=lambda p: (not _promoted(p, promote_first), -p.score))
    return ranked


def token_overlap(a: str, b: str) -> int:
    """Number of distinct words longer than two characters shared by a and b."""
    tokens_a = {t for t in _WORD_SPLIT_RE.split(a.lower()) if len(t) > 2}
    tokens_b = {t for t in _WORD_SPLIT_RE.split(b.lower()) if len(t) > 2}
    return len(tokens_a & tokens_b)


def looks_direct_ask(query: str, title: str) -> bool:
    """Whether the query is specific enough to show an out-of-stock item."""
    if _AVAILABILITY_ASK_RE.search(query):
        return True
    return token_overlap(query, title) >= DIRECT_ASK_MIN_OVERLAP
