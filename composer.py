"""
Response composition.

Pure functions from (intent, query, what was found) to a ChatResult. All
network work (harvests, HEAD checks, previews) happens before this point.
"""

import re
from dataclasses import dataclass, field

import intents
import scoring
from config import CANON_COURSE_URL, SiteUrls
from models import ChatResult, Link, Product, Rules, Snippet

GALLERY_SIZE = 10
COMPACT_SIZE = 3
GENERAL_PICKS = 5
REQUESTED_SIZE = 3

SHIPPING_TEXT = (
    "Most orders ship within 1 business day. Returns are limited to unopened/unused "
    "items within 7 days; sterile kits are final sale."
)
AFTERCARE_TEXT = (
    "Rinse twice daily with sterile saline. Avoid twisting the jewelry. Sleep on clean "
    "linens and avoid pools/hot tubs for at least 2 weeks."
)
AFTERCARE_TIPS = [
    "Rinse twice daily with sterile saline.",
    "Don't twist or rotate jewelry.",
    "Sleep on clean linens; avoid pools/hot tubs for 2 weeks.",
]
COURSE_TEXT = "Opening the course page even if it's currently out of stock or unavailable."
CONTACT_TEXT = "Questions about an order or a product? Reach us through the contact page and we'll get back to you."
KIT_EMPTY_TEXT = "Looking for a piercing kit? Tell me the piercing and I'll show options."
KIT_PROMPT = "What kind of piercing kit are you looking for?"
NO_MATCHES_TEXT = "No matches right now. Try one of these categories or rephrase your question."

# A truncated "...Class-COMING" slug (anything but "-COMING-SOON...")
_TRUNCATED_COURSE_RE = re.compile(r"Master-Body-Piercing-Class-COMING($|[^-S])")
_HTML_SUFFIX_RE = re.compile(r"\.html($|\?)", re.IGNORECASE)
_COURSE_ID_RE = re.compile(r"_p_363\.html($|\?)")


def normalize_course_url(raw: str | None) -> str:
    """Return the configured course URL only if it is the well-formed course page.

    Anything empty, truncated, not an .html page, or pointing at another
    product id resolves to the canonical course URL.
    """
    value = (raw or "").strip()
    if not value:
        return CANON_COURSE_URL
    if _TRUNCATED_COURSE_RE.search(value):
        return CANON_COURSE_URL
    if not _HTML_SUFFIX_RE.search(value):
        return CANON_COURSE_URL
    if not _COURSE_ID_RE.search(value):
        return CANON_COURSE_URL
    return value


@dataclass
class Findings:
    """Everything gathered for a query before composing the answer."""

    products: list[Product] = field(default_factory=list)  # search results, discovery order
    gallery: list[Product] = field(default_factory=list)  # category / home harvest
    snippet: Snippet | None = None
    course_url: str = ""
    course_image: str = ""


def in_stock(products: list[Product]) -> list[Product]:
    """Drop confirmed out-of-stock items; unknown stock counts as available."""
    return [p for p in products if p.instock is not False]


def requested_items(query: str, products: list[Product]) -> list[Product]:
    """Out-of-stock items the query asks about directly, one per URL."""
    seen: set[str] = set()
    requested: list[Product] = []
    for p in products:
        if p.url in seen or p.instock is not False or not scoring.looks_direct_ask(query, p.title):
            continue
        seen.add(p.url)
        requested.append(p)
    return requested[:REQUESTED_SIZE]


def faq_answer(query: str, rules: Rules, topic: str | None = None) -> str:
    """Canned answer for ``topic``, else for the first FAQ key the query mentions."""
    if topic and rules.faqs.get(topic):
        return rules.faqs[topic]
    lowered = query.lower()
    for key, answer in rules.faqs.items():
        if key and key.lower() in lowered:
            return answer
    return ""


def fallback_links(urls: SiteUrls) -> list[Link]:
    return [
        Link(label="Sterilized Body Jewelry", url=urls.sterilized),
        Link(label="Professional Piercing Kits", url=urls.pro_kits),
        Link(label="Safe & Sterile Piercing Kits", url=urls.safe_kits),
    ]


def _kit_links(urls: SiteUrls) -> list[Link]:
    return [
        Link(label="Professional Piercing Kits", url=urls.pro_kits),
        Link(label="Safe & Sterile Piercing Kits", url=urls.safe_kits),
    ]


def _no_matches(result: ChatResult, urls: SiteUrls) -> ChatResult:
    result.message = result.message or NO_MATCHES_TEXT
    result.links = result.links + [link for link in fallback_links(urls) if link not in result.links]
    return result


# ---------------------------------------------------------------------------
# Per-intent builders
# ---------------------------------------------------------------------------


def _shipping(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    return ChatResult(
        intent=intents.SHIPPING,
        query=query,
        heading="Shipping & Returns",
        message=faq_answer(query, rules, intents.SHIPPING) or SHIPPING_TEXT,
        links=[
            Link(label="Open Shipping & Returns Page", url=urls.shipping),
            Link(label="Contact Us", url=urls.contact),
        ],
        snippet=found.snippet,
    )


def _aftercare(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    return ChatResult(
        intent=intents.AFTERCARE,
        query=query,
        heading="Aftercare Essentials",
        message=faq_answer(query, rules, intents.AFTERCARE) or AFTERCARE_TEXT,
        tips=AFTERCARE_TIPS,
        links=[Link(label="Open Full Aftercare Page", url=urls.aftercare)],
        snippet=found.snippet,
    )


def _course(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    return ChatResult(
        intent=intents.COURSE,
        query=query,
        heading="Master Body Piercing Course",
        message=faq_answer(query, rules, intents.COURSE) or COURSE_TEXT,
        image=found.course_image,
        links=[
            Link(label="Go to Course", url=found.course_url or normalize_course_url(rules.course_url)),
            Link(label="About Us", url=urls.about),
            Link(label="Contact / Interest List", url=urls.contact),
        ],
    )


def _contact(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    return ChatResult(
        intent=intents.CONTACT,
        query=query,
        heading="Contact Us",
        message=faq_answer(query, rules, intents.CONTACT) or CONTACT_TEXT,
        links=[
            Link(label="Contact Us", url=urls.contact),
            Link(label="About Us", url=urls.about),
            Link(label="Shipping & Returns", url=urls.shipping),
        ],
        snippet=found.snippet,
    )


def _kit(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    kits = in_stock(found.gallery)[:GALLERY_SIZE]
    return ChatResult(
        intent=intents.KIT,
        query=query,
        heading="Piercing Kits: Home Specials" if kits else "Piercing Kits",
        message="" if kits else KIT_EMPTY_TEXT,
        items=kits,
        links=_kit_links(urls),
        prompt=KIT_PROMPT,
    )


def _piercing_label(query: str) -> str:
    """'nose?' -> 'Nose'."""
    words = (w.strip(intents.TRAILING_PUNCTUATION) for w in query.split())
    return " ".join(w for w in words if w).title()


def _kit_type(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    kits = in_stock([p for p in found.products if "kit" in p.title.lower()])[:GALLERY_SIZE]
    result = ChatResult(
        intent=intents.KIT_TYPE,
        query=query,
        heading=f"{_piercing_label(query)} Piercing Kits",
        items=kits,
        links=_kit_links(urls),
    )
    return result if kits else _no_matches(result, urls)


def _sterile(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    gallery = in_stock(found.gallery)[:GALLERY_SIZE]
    picks = in_stock(found.products)[:COMPACT_SIZE] or gallery[:COMPACT_SIZE]
    result = ChatResult(
        intent=intents.STERILE,
        query=query,
        heading="Sterilized Body Jewelry",
        message=faq_answer(query, rules),
        items=gallery,
        top_picks=picks,
        requested=requested_items(query, found.products + found.gallery),
        links=[Link(label="Open Full Sterilized Category", url=urls.sterilized)],
    )
    return result if gallery or picks else _no_matches(result, urls)


def _general(query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    picks = in_stock(found.products)[:GENERAL_PICKS]
    requested = requested_items(query, found.products)
    result = ChatResult(
        intent=intents.GENERAL,
        query=query,
        heading="Top Picks" if picks else "",
        message=faq_answer(query, rules),
        top_picks=picks,
        requested=requested,
        snippet=found.snippet,
    )
    return result if picks or requested else _no_matches(result, urls)


_BUILDERS = {
    intents.SHIPPING: _shipping,
    intents.AFTERCARE: _aftercare,
    intents.COURSE: _course,
    intents.CONTACT: _contact,
    intents.KIT: _kit,
    intents.KIT_TYPE: _kit_type,
    intents.STERILE: _sterile,
    intents.GENERAL: _general,
}


def compose(intent: str, query: str, found: Findings, urls: SiteUrls, rules: Rules) -> ChatResult:
    """Assemble the answer. ``found.products`` is expected ranked already."""
    builder = _BUILDERS.get(intent, _general)
    return builder(query, found, urls, rules)
