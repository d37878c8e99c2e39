import re

from pydantic import BaseModel, field_validator

_WS_RE = re.compile(r"\s+")

# Fallback display name when neither the listing nor the product page gives one
PLACEHOLDER_TITLE = "Product"


class Product(BaseModel):
    """A product as harvested from the storefront.

    ``url`` is the dedup key. ``instock`` is tri-state: ``None`` means the
    page gave no usable signal either way.
    """

    title: str = PLACEHOLDER_TITLE
    url: str
    price: str = ""  # "$29.99" or empty when undetectable
    image: str = ""
    instock: bool | None = None
    score: float = 0.0  # per-query relevance

    @field_validator("title")
    @classmethod
    def clean_title(cls, v: str) -> str:
        v = _WS_RE.sub(" ", (v or "").replace("\u00a0", " ")).strip()
        return v or PLACEHOLDER_TITLE


class Document(BaseModel):
    """An informational page (shipping, aftercare, ...) ingested for snippet lookup."""

    url: str
    title: str
    text: str
    image: str = ""


class Snippet(BaseModel):
    title: str
    url: str
    snippet: str
    image: str = ""


class Link(BaseModel):
    label: str
    url: str


class ChatResult(BaseModel):
    """Structured answer for one chat query."""

    intent: str
    query: str
    heading: str = ""
    message: str = ""
    tips: list[str] = []
    image: str = ""
    items: list[Product] = []  # gallery view
    top_picks: list[Product] = []  # compact view
    requested: list[Product] = []  # out-of-stock items the user asked about directly
    links: list[Link] = []
    prompt: str = ""  # follow-up question shown under the results
    snippet: Snippet | None = None


# ---------------------------------------------------------------------------
# Configuration files
# ---------------------------------------------------------------------------


class Rules(BaseModel):
    """Shop-owner rules: canned FAQ answers, query aliases, promotions, course override."""

    faqs: dict[str, str] = {}
    promote_first: list[str] = []
    aliases: dict[str, str] = {}
    course_url: str = ""


class PageEntry(BaseModel):
    url: str
    selector: str = "body"


class PagesConfig(BaseModel):
    pages: list[PageEntry] = []
