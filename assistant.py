"""
Query-to-result pipeline.

  query -> aliases -> intent -> (harvest / search / HEAD check) -> rank -> compose

Composed answers are cached per normalized query for a short TTL so repeated
widget questions don't re-scrape the storefront.
"""

import logging
import re
import time

import intents
import scoring
from cache import TTLCache
from composer import Findings, compose, normalize_course_url
from config import Settings, load_pages, load_rules
from fetcher import Fetcher, FetchError
from harvester import CatalogHarvester
from knowledge import DocumentStore
from models import ChatResult, Product, Rules
from parser import extract_image, extract_title, load

logger = logging.getLogger(__name__)


def dedupe(*groups: list[Product]) -> list[Product]:
    """Concatenate product lists, keeping the first record per URL."""
    seen: set[str] = set()
    merged: list[Product] = []
    for group in groups:
        for product in group:
            if product.url not in seen:
                seen.add(product.url)
                merged.append(product)
    return merged


def apply_aliases(query: str, aliases: dict[str, str]) -> str:
    """Rewrite shop-specific phrases (whole words, case-insensitive) before classification."""
    for phrase, replacement in aliases.items():
        if phrase:
            query = re.sub(rf"\b{re.escape(phrase)}\b", replacement, query, flags=re.IGNORECASE)
    return query


class Assistant:
    def __init__(
        self,
        settings: Settings,
        fetcher: Fetcher,
        harvester: CatalogHarvester,
        rules: Rules | None = None,
        documents: DocumentStore | None = None,
        chat_cache: TTLCache | None = None,
    ):
        self.settings = settings
        self.urls = settings.urls
        self.fetcher = fetcher
        self.harvester = harvester
        self.rules = rules or Rules()
        self.documents = documents if documents is not None else DocumentStore()
        self.chat_cache = chat_cache if chat_cache is not None else TTLCache(settings.chat_ttl)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Assistant":
        """Wire up caches, fetcher and harvester for one process."""
        fetcher = Fetcher(TTLCache(settings.page_ttl), timeout=settings.fetch_timeout)
        harvester = CatalogHarvester(fetcher, settings.urls, TTLCache(settings.catalog_ttl))
        return cls(settings, fetcher, harvester, rules=load_rules(settings.rules_file))

    async def load_documents(self) -> int:
        pages = load_pages(self.settings.pages_file)
        return await self.documents.load(pages, self.fetcher)

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    def classify(self, query: str) -> str:
        return intents.intent_of(apply_aliases(query, self.rules.aliases))

    async def respond(self, query: str) -> ChatResult:
        query = apply_aliases((query or "").strip(), self.rules.aliases)
        key = intents.normalize_query(query)
        cached = self.chat_cache.get(key)
        if cached is not None:
            return cached

        t0 = time.monotonic()
        intent = intents.intent_of(query)
        found = await self._gather(intent, query)
        result = compose(intent, query, found, self.urls, self.rules)
        logger.info(
            "%r -> %s: %d items, %d picks, %d requested in %.2fs",
            query,
            intent,
            len(result.items),
            len(result.top_picks),
            len(result.requested),
            time.monotonic() - t0,
        )
        self.chat_cache.set(key, result)
        return result

    async def _gather(self, intent: str, query: str) -> Findings:
        found = Findings()

        if intent in (intents.SHIPPING, intents.AFTERCARE, intents.CONTACT):
            found.snippet = self.documents.search(query)

        elif intent == intents.COURSE:
            found.course_url = await self.course_url()
            found.course_image = (await self.preview(found.course_url))["image"]

        elif intent == intents.KIT:
            found.gallery = await self.harvester.harvest_home_kits()

        elif intent == intents.KIT_TYPE:
            searched = await self.harvester.search_on_demand(f"{query} piercing kit")
            found.products = self._rank(query, searched)

        elif intent == intents.STERILE:
            searched = await self.harvester.search_on_demand(query)
            found.gallery = await self.harvester.harvest_category(self.urls.sterilized)
            found.products = self._rank(query, dedupe(searched, found.gallery))

        else:
            searched = await self.harvester.search_on_demand(query)
            found.products = self._rank(query, searched)
            found.snippet = self.documents.search(query)

        return found

    def _rank(self, query: str, products: list[Product]) -> list[Product]:
        # Out-of-stock items stay in (at the bottom) so direct asks can surface them
        return scoring.rank(query, products, out_of_stock="penalize", promote_first=self.rules.promote_first)

    async def course_url(self) -> str:
        """Guarded course URL; the contact page stands in if the course page is unreachable."""
        url = normalize_course_url(self.rules.course_url)
        if await self.fetcher.head_ok(url):
            return url
        logger.warning("Course page %s failed HEAD check, linking contact page instead", url)
        return self.urls.contact

    async def preview(self, url: str) -> dict[str, str]:
        """Title and image for a link card. Never raises."""
        try:
            html = await self.fetcher.get(url, self.settings.page_ttl)
        except FetchError:
            return {"title": url, "image": ""}
        soup = load(html)
        return {"title": extract_title(soup, url) or url, "image": extract_image(soup, url)}
