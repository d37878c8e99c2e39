import pytest

from cache import TTLCache
from harvester import CatalogHarvester, merge_product
from models import Product

from conftest import SITE, StubFetcher, listing_page, product_page

CATEGORY = f"{SITE}/Sterilized-Body-Jewelry_c_42.html"


def _harvester(fetcher, urls, clock, **kwargs) -> CatalogHarvester:
    return CatalogHarvester(fetcher, urls, TTLCache(ttl=900, clock=clock), **kwargs)


def test_merge_prefers_enrichment_where_present():
    base = Product(title="Ring", url=f"{SITE}/r_p_1.html", price="$10.00", image=f"{SITE}/list.jpg")
    enrichment = Product(title="Product", url=base.url, price="", image=f"{SITE}/page.jpg", instock=False)
    merged = merge_product(base, enrichment)
    assert merged.title == "Ring"
    assert merged.price == "$10.00"
    assert merged.image == f"{SITE}/page.jpg"
    assert merged.instock is False

    renamed = merge_product(base, Product(title="16g Ring", url=base.url))
    assert renamed.title == "16g Ring"
    assert renamed.instock is None


@pytest.mark.asyncio
async def test_enriches_incomplete_listings(urls, clock):
    fetcher = StubFetcher(
        {
            CATEGORY: listing_page(
                [
                    {"href": "/Full_p_1.html", "title": "Full", "price": "$9.99", "image": "/assets/images/f.jpg"},
                    {"href": "/Bare_p_2.html", "title": "Bare"},
                ]
            ),
            f"{SITE}/Bare_p_2.html": product_page("Bare Septum Ring", price="$14.50", stock="sold"),
        }
    )
    products = await _harvester(fetcher, urls, clock).harvest_category(CATEGORY)

    full, bare = products
    assert full.instock is None
    assert bare.title == "Bare Septum Ring"
    assert bare.price == "$14.50"
    assert bare.image == f"{SITE}/assets/images/item.jpg"
    assert bare.instock is False
    # only the incomplete card is fetched
    assert fetcher.calls == [CATEGORY, f"{SITE}/Bare_p_2.html"]


@pytest.mark.asyncio
async def test_failed_enrichment_drops_candidate(urls, clock):
    fetcher = StubFetcher(
        {
            CATEGORY: listing_page(
                [
                    {"href": "/Missing_p_1.html", "title": "Missing"},
                    {"href": "/Ok_p_2.html", "title": "Ok", "price": "$3.00", "image": "/o.jpg"},
                ]
            )
        }
    )
    products = await _harvester(fetcher, urls, clock).harvest_category(CATEGORY)
    assert [p.title for p in products] == ["Ok"]


@pytest.mark.asyncio
async def test_second_harvest_is_served_from_cache(urls, clock):
    fetcher = StubFetcher(
        {
            CATEGORY: listing_page([{"href": "/Bare_p_2.html", "title": "Bare"}]),
            f"{SITE}/Bare_p_2.html": product_page("Bare", price="$1.00"),
        }
    )
    harvester = _harvester(fetcher, urls, clock)
    first = await harvester.harvest_category(CATEGORY)
    calls = len(fetcher.calls)

    clock.advance(899)
    second = await harvester.harvest_category(CATEGORY)
    assert second == first
    assert len(fetcher.calls) == calls

    clock.advance(2)
    await harvester.harvest_category(CATEGORY)
    assert len(fetcher.calls) > calls


@pytest.mark.asyncio
async def test_unavailable_listing_is_empty_and_not_cached(urls, clock):
    fetcher = StubFetcher({})
    harvester = _harvester(fetcher, urls, clock)
    assert await harvester.harvest_category(CATEGORY) == []
    fetcher.pages[CATEGORY] = listing_page([{"href": "/A_p_1.html", "title": "A", "price": "$1.00", "image": "/a.jpg"}])
    assert len(await harvester.harvest_category(CATEGORY)) == 1


@pytest.mark.asyncio
async def test_enrichment_concurrency_is_bounded(urls, clock):
    cards = [{"href": f"/Item_p_{i}.html", "title": f"Item {i}"} for i in range(8)]
    pages = {CATEGORY: listing_page(cards)}
    pages.update({f"{SITE}/Item_p_{i}.html": product_page(f"Item {i}", price="$2.00") for i in range(8)})
    fetcher = StubFetcher(pages, delay=0.01)

    products = await _harvester(fetcher, urls, clock, concurrency=4).harvest_category(CATEGORY)
    assert len(products) == 8
    assert [p.title for p in products] == [f"Item {i}" for i in range(8)]
    assert fetcher.max_in_flight <= 4


@pytest.mark.asyncio
async def test_enrichment_is_capped(urls, clock):
    cards = [{"href": f"/Item_p_{i}.html", "title": f"Item {i}"} for i in range(12)]
    pages = {CATEGORY: listing_page(cards)}
    pages.update({f"{SITE}/Item_p_{i}.html": product_page(f"Item {i}", price="$2.00") for i in range(12)})
    fetcher = StubFetcher(pages)

    products = await _harvester(fetcher, urls, clock).harvest_category(CATEGORY)
    # 8 enriched; the other 4 still lack price and image but are kept as listed
    assert len(fetcher.calls) == 1 + 8
    assert len(products) == 12
    assert [p.price for p in products[8:]] == [""] * 4


@pytest.mark.asyncio
async def test_tops_up_from_unlisted_product_links(urls, clock):
    cards = [
        {"href": f"/Item_p_{i}.html", "title": f"Item {i}", "price": "$1.00", "image": "/i.jpg"}
        for i in range(26)
    ]
    pages = {CATEGORY: listing_page(cards)}
    pages.update({f"{SITE}/Item_p_{i}.html": product_page(f"Item {i}", price="$1.00") for i in (24, 25)})
    fetcher = StubFetcher(pages)

    products = await _harvester(fetcher, urls, clock, target_size=30).harvest_category(CATEGORY)
    assert len(products) == 26
    assert fetcher.calls[1:] == [f"{SITE}/Item_p_24.html", f"{SITE}/Item_p_25.html"]


@pytest.mark.asyncio
async def test_home_kits_keeps_only_kits(urls, clock):
    fetcher = StubFetcher(
        {
            urls.home: listing_page(
                [
                    {"href": "/Ear-Kit_p_1.html", "title": "Ear Piercing Kit", "price": "$20.00", "image": "/k.jpg"},
                    {"href": "/Gift_p_2.html", "title": "Gift Card", "price": "$25.00", "image": "/g.jpg"},
                    {"href": "/Nose_p_3.html", "title": "Nose"},
                ]
            ),
            f"{SITE}/Nose_p_3.html": product_page("Nose Piercing Kit", price="$18.00"),
        }
    )
    products = await _harvester(fetcher, urls, clock).harvest_home_kits()
    # "Nose" only qualifies once enrichment reveals the full title, so it is filtered out up front
    assert [p.title for p in products] == ["Ear Piercing Kit"]


@pytest.mark.asyncio
async def test_search_uses_expanded_query(urls, clock):
    fetcher = StubFetcher({})
    harvester = _harvester(fetcher, urls, clock)
    await harvester.search_on_demand("bull ring")
    (url,) = fetcher.calls
    assert url.startswith(f"{SITE}/search.asp?keyword=bull+ring+")
    assert "septum" in url
