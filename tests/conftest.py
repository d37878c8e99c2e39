import asyncio

import pytest

from config import SiteUrls
from fetcher import FetchError

SITE = "https://shop.example"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFetcher:
    """Serves canned pages by URL and records every call.

    Unknown URLs raise FetchError(404). ``in_flight`` / ``max_in_flight``
    track concurrent calls.
    """

    def __init__(self, pages: dict[str, str] | None = None, head_ok: bool = True, delay: float = 0):
        self.pages = dict(pages or {})
        self.head_result = head_ok
        self.delay = delay
        self.calls: list[str] = []
        self.head_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get(self, url: str, ttl: float | None = None) -> str:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url not in self.pages:
                raise FetchError(url, 404)
            return self.pages[url]
        finally:
            self.in_flight -= 1

    async def head_ok(self, url: str) -> bool:
        self.head_calls.append(url)
        return self.head_result

    async def aclose(self) -> None:
        pass


def product_page(
    title: str,
    price: str = "",
    image: str = "/assets/images/item.jpg",
    stock: str = "add",
) -> str:
    """Minimal product page. ``stock``: "add" (cart button), "sold" (Sold Out text), "" (no signal)."""
    price_html = f'<div class="ProductPrice">Our Price: {price}</div>' if price else ""
    stock_html = {
        "add": '<button type="submit">Add to Cart</button>',
        "sold": "<p>Sold Out</p>",
        "": "",
    }[stock]
    return f"""
    <html><head><title>{title} | Shop</title></head>
    <body>
      <h1>{title}</h1>
      <img src="{image}">
      {price_html}
      {stock_html}
    </body></html>
    """


def listing_page(cards: list[dict]) -> str:
    """Category page with one card per dict: href, title, optional price / image."""
    parts = []
    for card in cards:
        price = f'<span class="price">{card["price"]}</span>' if card.get("price") else ""
        image = f'<img src="{card["image"]}">' if card.get("image") else ""
        parts.append(
            f"""
            <div class="product-card">
              <a href="{card['href']}">{image}</a>
              <a class="product-name" href="{card['href']}">{card['title']}</a>
              {price}
            </div>"""
        )
    return f"<html><body><div class='products'>{''.join(parts)}</div></body></html>"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def urls() -> SiteUrls:
    return SiteUrls.for_site(SITE)
