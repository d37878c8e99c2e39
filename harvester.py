"""
Catalog harvesting.

Turns a category, search-results or home page into enriched Product records:

  1. listing page -> light candidates (title / url / price / image)
  2. candidates missing price or image -> one product-page fetch each
  3. merge enrichment onto the listing records by URL
  4. top up from the page's remaining product links if the set is short

Product-page fetches run with bounded concurrency: serial is too slow for a
chat reply, unbounded would hammer the storefront. A failed URL is dropped
and never aborts the harvest. Finished sets are cached per logical key.
"""

import logging
import time
from collections.abc import Callable
from urllib.parse import quote_plus

import scoring
from cache import TTLCache
from concurrency import bounded_map
from config import SiteUrls
from fetcher import Fetcher, FetchError
from listing import extract_listings, product_links
from models import PLACEHOLDER_TITLE, Product
from parser import load, parse_page

logger = logging.getLogger(__name__)

ENRICH_LIMIT = 8
TARGET_SIZE = 16
CONCURRENCY = 4

HOME_KITS_KEY = "home-kits"


def merge_product(base: Product, enrichment: Product) -> Product:
    """Overlay product-page fields onto a listing record.

    Enrichment wins wherever it found something; listing values survive
    wherever it did not.
    """
    update: dict = {}
    if enrichment.title and enrichment.title != PLACEHOLDER_TITLE:
        update["title"] = enrichment.title
    if enrichment.price:
        update["price"] = enrichment.price
    if enrichment.image:
        update["image"] = enrichment.image
    if enrichment.instock is not None:
        update["instock"] = enrichment.instock
    return base.model_copy(update=update)


def _is_kit(product: Product) -> bool:
    return "kit" in product.title.lower()


class CatalogHarvester:
    def __init__(
        self,
        fetcher: Fetcher,
        urls: SiteUrls,
        cache: TTLCache,
        page_ttl: float | None = None,
        enrich_limit: int = ENRICH_LIMIT,
        target_size: int = TARGET_SIZE,
        concurrency: int = CONCURRENCY,
    ):
        self.fetcher = fetcher
        self.urls = urls
        self.cache = cache
        self.page_ttl = page_ttl
        self.enrich_limit = enrich_limit
        self.target_size = target_size
        self.concurrency = concurrency

    async def harvest_category(self, category_url: str) -> list[Product]:
        return await self._harvest(category_url, f"category:{category_url}")

    async def harvest_home_kits(self) -> list[Product]:
        """Kits from the home page's featured area (the home page mixes in other merchandise)."""
        return await self._harvest(self.urls.home, HOME_KITS_KEY, keep=_is_kit)

    async def search_on_demand(self, query: str) -> list[Product]:
        """Run the storefront's own keyword search with the synonym-expanded query."""
        expanded = scoring.expand(query)
        url = self.urls.search + quote_plus(expanded)
        return await self._harvest(url, f"search:{expanded.lower()}")

    async def fetch_product(self, url: str) -> Product:
        """Fetch and parse one product page. Raises FetchError."""
        html = await self.fetcher.get(url, self.page_ttl)
        page = parse_page(html, url)
        return Product(
            title=page.title,
            url=url,
            price=page.price,
            image=page.image,
            instock=page.instock,
        )

    async def _harvest(
        self,
        url: str,
        cache_key: str,
        keep: Callable[[Product], bool] | None = None,
    ) -> list[Product]:
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Catalog cache hit: %s", cache_key)
            return list(cached)

        t0 = time.monotonic()
        try:
            html = await self.fetcher.get(url, self.page_ttl)
        except FetchError as exc:
            logger.warning("Listing page unavailable, returning nothing: %s", exc)
            return []

        soup = load(html)
        listed = extract_listings(soup, url)
        seen = {c.url for c in listed}
        candidates = [c for c in listed if keep is None or keep(c)]

        # Enrich only what the listing left incomplete
        needs = [c.url for c in candidates if not c.price or not c.image][: self.enrich_limit]
        enriched = {p.url: p for p in await bounded_map(self.fetch_product, needs, self.concurrency)}

        products: list[Product] = []
        for candidate in candidates:
            if candidate.url in enriched:
                products.append(merge_product(candidate, enriched[candidate.url]))
            elif candidate.url not in needs:
                products.append(candidate)
        if keep is not None:
            products = [p for p in products if keep(p)]

        # Top up from product links the listing extractor did not pick up
        pool = [link for link in product_links(soup, url) if link not in seen]
        while len(products) < self.target_size and pool:
            batch, pool = pool[: self.target_size - len(products)], pool[self.target_size - len(products) :]
            extra = await bounded_map(self.fetch_product, batch, self.concurrency)
            products.extend(p for p in extra if keep is None or keep(p))

        logger.info(
            "Harvested %d products from %s (%d listed, %d enriched) in %.2fs",
            len(products),
            url,
            len(listed),
            len(enriched),
            time.monotonic() - t0,
        )
        self.cache.set(cache_key, products)
        return list(products)
