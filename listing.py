"""
Listing-page extraction.

Finds product links on a category, search or home page and builds light
Product records from whatever the surrounding markup offers, without
visiting the product pages themselves.
"""

import logging
import re

from bs4 import BeautifulSoup, Tag

from models import Product
from parser import MONEY_RE, absolute_url, clean_text, format_price

logger = logging.getLogger(__name__)

MAX_LISTINGS = 24
MAX_TITLE_CHARS = 120

# Product URL shapes: numeric product-id suffixes plus the legacy script paths
_PRODUCT_HREF_RE = re.compile(
    r"_p_\d+(\.html)?|/p-\d+|ProductDetails\.asp|product\.asp|/product/\d+",
    re.IGNORECASE,
)
_CARD_CLASS_RE = re.compile(r"product|item|card|tile|thumb", re.IGNORECASE)
_NAME_CLASS_RE = re.compile(r"name|title", re.IGNORECASE)
_PRICE_CLASS_RE = re.compile(r"price", re.IGNORECASE)


def is_product_href(href: str) -> bool:
    return bool(href) and bool(_PRODUCT_HREF_RE.search(href))


def product_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """All product-shaped links on the page, absolute and deduplicated, in page order."""
    links: dict[str, None] = {}
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if is_product_href(href):
            links.setdefault(absolute_url(href, base_url).split("#")[0], None)
    return list(links)


def _distinct_product_links(tag: Tag) -> int:
    hrefs = {a["href"].strip().split("#")[0] for a in tag.find_all("a", href=True)}
    return sum(1 for href in hrefs if is_product_href(href))


def _card_for(anchor: Tag, max_depth: int = 4) -> Tag:
    """Nearest ancestor that looks like a product card.

    Never widens past an element holding links to more than one product, so
    a grid wrapper is not mistaken for a card.
    """
    best: Tag = anchor
    for depth, parent in enumerate(anchor.parents):
        if depth >= max_depth or parent.name in ("body", "html", "[document]"):
            break
        if _distinct_product_links(parent) > 1:
            break
        best = parent
        classes = " ".join(parent.get("class") or [])
        if _CARD_CLASS_RE.search(classes) or parent.name == "li":
            return parent
    return best


def _listing_title(anchor: Tag, card: Tag) -> str:
    title = clean_text(anchor.get("title") or "")
    if title:
        return title

    for el in card.find_all(["h2", "h3", "h4", "h5"]):
        text = clean_text(el.get_text(" "))
        if text:
            return text
    for el in card.find_all(class_=_NAME_CLASS_RE):
        text = clean_text(el.get_text(" "))
        if text:
            return text

    text = clean_text(anchor.get_text(" "))
    if text:
        return text

    img = anchor.find("img", alt=True)
    return clean_text(img["alt"]) if img else ""


def _listing_price(card: Tag) -> str:
    for el in card.find_all(class_=_PRICE_CLASS_RE):
        match = MONEY_RE.search(clean_text(el.get_text(" ")))
        if match:
            return format_price(match.group(0))
    match = MONEY_RE.search(clean_text(card.get_text(" ")))
    return format_price(match.group(0)) if match else ""


def _listing_image(card: Tag, base_url: str) -> str:
    for img in card.find_all("img"):
        for attr in ("data-src", "data-original", "src"):
            src = (img.get(attr) or "").strip()
            if src and not src.startswith("data:"):
                return absolute_url(src, base_url)
    return ""


def extract_listings(soup: BeautifulSoup, base_url: str, limit: int = MAX_LISTINGS) -> list[Product]:
    """Lightweight candidates from a listing page, deduplicated by absolute URL.

    The same product is often linked twice (image and name). The first
    occurrence fixes the order; later ones only fill fields it lacked.
    """
    found: dict[str, dict] = {}

    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not is_product_href(href):
            continue
        url = absolute_url(href, base_url).split("#")[0]
        if url not in found and len(found) >= limit:
            continue

        card = _card_for(a)
        fields = {
            "title": _listing_title(a, card)[:MAX_TITLE_CHARS],
            "price": _listing_price(card),
            "image": _listing_image(card, base_url),
        }

        existing = found.get(url)
        if existing is None:
            found[url] = {"url": url, **fields}
        else:
            for key, value in fields.items():
                if value and not existing.get(key):
                    existing[key] = value

    logger.debug("Found %d listing candidates on %s", len(found), base_url)
    return [Product(**record) for record in found.values()]
