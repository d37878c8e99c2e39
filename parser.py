"""
HTML parser for storefront pages.

Each field (title, image, price, stock) is produced by an ordered chain of
extraction strategies. Strategies are tried in sequence and the first one
that yields a value wins; the chain ends in an empty/unknown value rather
than an exception.

All heuristics here are tuned to the storefront's current templates and are
best-effort by nature.
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

Strategy = Callable[[BeautifulSoup, str], Any]

_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Collapse whitespace (including non-breaking spaces) and trim."""
    return _WS_RE.sub(" ", (text or "").replace("\u00a0", " ")).strip()


def absolute_url(url: str, base: str) -> str:
    return urljoin(base, url.strip())


@dataclass
class ExtractorChain:
    """Ordered extraction strategies for one field."""

    name: str
    strategies: list[Strategy]

    def run(self, soup: BeautifulSoup, url: str) -> tuple[Any, str | None]:
        """Return (value, strategy_name) from the first strategy with a result."""
        for strategy in self.strategies:
            value = strategy(soup, url)
            if value is not None and value != "":
                return value, strategy.__name__
        return None, None


@dataclass
class ParsedPage:
    """Fields extracted from one page, plus which strategy produced each."""

    url: str
    title: str = ""
    text: str = ""
    image: str = ""
    price: str = ""
    instock: bool | None = None
    sources: dict[str, str] = field(default_factory=dict)


def load(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------


def _json_ld_offers(soup: BeautifulSoup) -> list[dict]:
    """Collect offer dicts from Product blocks in <script type="application/ld+json">."""
    offers: list[dict] = []
    for tag in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = tag.string
        if not text:
            continue
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Skipping malformed JSON-LD block")
            continue
        blocks = data if isinstance(data, list) else [data]
        for block in blocks:
            if not isinstance(block, dict):
                continue
            block_offers = block.get("offers")
            if isinstance(block_offers, dict):
                offers.append(block_offers)
            elif isinstance(block_offers, list):
                offers.extend(o for o in block_offers if isinstance(o, dict))
    return offers


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------


def _title_from_heading(soup: BeautifulSoup, url: str) -> str | None:
    h1 = soup.find("h1")
    return clean_text(h1.get_text(" ")) if h1 else None


def _title_from_document_title(soup: BeautifulSoup, url: str) -> str | None:
    return clean_text(soup.title.get_text(" ")) if soup.title else None


TITLE_CHAIN = ExtractorChain("title", [_title_from_heading, _title_from_document_title])


def extract_title(soup: BeautifulSoup, url: str = "") -> str:
    value, _ = TITLE_CHAIN.run(soup, url)
    return value or ""


# ---------------------------------------------------------------------------
# Body text
# ---------------------------------------------------------------------------

_NOISE_TAGS = ("script", "style", "noscript", "svg", "template", "iframe")
_CHROME_TAGS = ("nav", "header", "footer")


def extract_text(soup: BeautifulSoup, selector: str = "body", strip_chrome: bool = False) -> str:
    """Visible text under ``selector`` with scripts and styling removed."""
    root = soup.select_one(selector) if selector else None
    if root is None:
        root = soup.find("body") or soup

    # Work on a copy so we don't mutate the original
    copy = BeautifulSoup(str(root), "lxml")
    noise = _NOISE_TAGS + _CHROME_TAGS if strip_chrome else _NOISE_TAGS
    for tag_name in noise:
        for el in copy.find_all(tag_name):
            el.decompose()

    return clean_text(copy.get_text(separator=" "))


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------


def _image_from_social_meta(soup: BeautifulSoup, url: str) -> str | None:
    meta = soup.find("meta", attrs={"property": "og:image"}) or soup.find("meta", attrs={"name": "og:image"})
    content = meta.get("content") if meta else None
    return absolute_url(content, url) if content else None


def _image_from_lazy_attrs(soup: BeautifulSoup, url: str) -> str | None:
    for attr in ("data-src", "data-original"):
        img = soup.find("img", attrs={attr: True})
        if img and img.get(attr, "").strip():
            return absolute_url(img[attr], url)
    return None


def _image_from_asset_paths(soup: BeautifulSoup, url: str) -> str | None:
    for fragment in ("/assets/images", "/images"):
        img = soup.select_one(f'img[src*="{fragment}"]')
        if img:
            return absolute_url(img["src"], url)
    return None


def _image_from_any_img(soup: BeautifulSoup, url: str) -> str | None:
    for img in soup.find_all("img", src=True):
        if img["src"].strip():
            return absolute_url(img["src"], url)
    return None


IMAGE_CHAIN = ExtractorChain(
    "image",
    [_image_from_social_meta, _image_from_lazy_attrs, _image_from_asset_paths, _image_from_any_img],
)


def extract_image(soup: BeautifulSoup, url: str) -> str:
    value, _ = IMAGE_CHAIN.run(soup, url)
    return value or ""


# ---------------------------------------------------------------------------
# Price
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
# Money strings always carry cents on this storefront: "$1,299.00", "29.99"
MONEY_RE = re.compile(r"(?<![\d,.])\$?(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}(?!\d)")
_CURRENT_PRICE_LABEL = re.compile(r"\b(sale|now|your price|our price|special)\b", re.IGNORECASE)
_LIST_PRICE_LABEL = re.compile(r"\b(retail|msrp|compare)\b", re.IGNORECASE)
_PRICE_BLOCK_SELECTOR = (
    '[class*="price" i], [id*="price" i], .sale, .SalePrice, .OurPrice, .retail, .RetailPrice'
)


def format_price(raw: str) -> str:
    """'1,299.00' / '$29.99' -> '$1299.00' / '$29.99'. Empty when no number is present."""
    match = _NUMBER_RE.search(raw or "")
    if not match:
        return ""
    return "$" + match.group(0).replace(",", "")


def _money_value(money: str) -> float:
    return float(money.replace("$", "").replace(",", ""))


def _price_from_itemprop(soup: BeautifulSoup, url: str) -> str | None:
    meta = soup.find("meta", attrs={"itemprop": "price"})
    if meta and meta.get("content"):
        return format_price(meta["content"]) or None
    el = soup.find(attrs={"itemprop": "price"})
    if el:
        return format_price(el.get("content") or el.get_text(" ")) or None
    return None


def _price_from_product_meta(soup: BeautifulSoup, url: str) -> str | None:
    for prop in ("product:price:amount", "og:price:amount"):
        meta = soup.find("meta", attrs={"property": prop})
        if meta and meta.get("content"):
            return format_price(meta["content"]) or None
    return None


def _price_from_json_ld(soup: BeautifulSoup, url: str) -> str | None:
    for offer in _json_ld_offers(soup):
        raw = offer.get("price") or offer.get("lowPrice")
        if raw is not None:
            price = format_price(str(raw))
            if price:
                return price
    return None


def _price_from_labelled_blocks(soup: BeautifulSoup, url: str) -> str | None:
    """Score every money string found in price-looking elements by its label.

    Current-price wording scores +2, list-price wording -1. The best score
    wins; ties go to the smallest amount, which favours the discounted figure
    over a crossed-out one.
    """
    candidates: list[tuple[int, float, str]] = []
    for el in soup.select(_PRICE_BLOCK_SELECTOR):
        text = clean_text(el.get_text(" "))
        amounts = MONEY_RE.findall(text)
        if not amounts:
            continue
        score = 0
        if _CURRENT_PRICE_LABEL.search(text):
            score += 2
        if _LIST_PRICE_LABEL.search(text):
            score -= 1
        for money in amounts:
            candidates.append((score, _money_value(money), money))

    if not candidates:
        return None
    candidates.sort(key=lambda c: (-c[0], c[1]))
    return format_price(candidates[0][2])


PRICE_CHAIN = ExtractorChain(
    "price",
    [_price_from_itemprop, _price_from_product_meta, _price_from_json_ld, _price_from_labelled_blocks],
)


def extract_price(soup: BeautifulSoup, url: str = "") -> str:
    value, _ = PRICE_CHAIN.run(soup, url)
    return value or ""


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------

_OUT_OF_STOCK_TEXT = re.compile(
    r"(out\s*of\s*stock|sold\s*out|unavailable|back[-\s]?order\s*only)", re.IGNORECASE
)
_ADD_TO_CART = re.compile(r"(add\s*to\s*cart|buy\s*now|addtocart)", re.IGNORECASE)


def _availability_token(value: str) -> bool | None:
    token = re.sub(r"[^a-z]", "", value.lower())
    if "outofstock" in token or "soldout" in token or "discontinued" in token:
        return False
    if "instock" in token or "preorder" in token:
        return True
    return None


def _stock_from_itemprop(soup: BeautifulSoup, url: str) -> bool | None:
    meta = soup.find("meta", attrs={"itemprop": "availability"})
    link = soup.find("link", attrs={"itemprop": "availability"})
    value = (meta.get("content") if meta else None) or (link.get("href") if link else None)
    return _availability_token(value) if value else None


def _stock_from_json_ld(soup: BeautifulSoup, url: str) -> bool | None:
    for offer in _json_ld_offers(soup):
        value = offer.get("availability")
        if isinstance(value, str):
            verdict = _availability_token(value)
            if verdict is not None:
                return verdict
    return None


def _stock_from_negative_text(soup: BeautifulSoup, url: str) -> bool | None:
    # Explicit sold-out wording beats any add-to-cart control found later
    return False if _OUT_OF_STOCK_TEXT.search(extract_text(soup)) else None


def _stock_from_cart_control(soup: BeautifulSoup, url: str) -> bool | None:
    for el in soup.select("button, input[type=submit], input[type=image], a"):
        label = clean_text(el.get_text(" ")) or el.get("value") or el.get("alt") or ""
        if _ADD_TO_CART.search(label):
            return True
    return None


STOCK_CHAIN = ExtractorChain(
    "instock",
    [_stock_from_itemprop, _stock_from_json_ld, _stock_from_negative_text, _stock_from_cart_control],
)


def detect_stock(soup: BeautifulSoup, url: str = "") -> bool | None:
    """True / False when the page says so, None when inconclusive."""
    value, _ = STOCK_CHAIN.run(soup, url)
    return value


# ---------------------------------------------------------------------------
# Whole page
# ---------------------------------------------------------------------------


def parse_page(html: str, url: str, selector: str = "body") -> ParsedPage:
    """Run every field chain over one page."""
    soup = load(html)
    page = ParsedPage(url=url, text=extract_text(soup, selector))

    for chain, attr in (
        (TITLE_CHAIN, "title"),
        (IMAGE_CHAIN, "image"),
        (PRICE_CHAIN, "price"),
        (STOCK_CHAIN, "instock"),
    ):
        value, source = chain.run(soup, url)
        if source is not None:
            setattr(page, attr, value)
            page.sources[attr] = source

    return page
