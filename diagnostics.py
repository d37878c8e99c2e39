"""
Diagnostic: fetch pages and report which extraction strategy filled each field.

Useful when the storefront's templates change and prices or stock start
coming back empty:

    python diagnostics.py https://www.hottiebodyjewelry.com/Some-Ring_p_123.html
    python diagnostics.py --listing https://www.hottiebodyjewelry.com/Sterilized-Body-Jewelry_c_42.html
"""

import argparse
import asyncio

from cache import TTLCache
from fetcher import Fetcher, FetchError
from listing import extract_listings, product_links
from parser import load, parse_page

FIELDS = ["title", "image", "price", "instock"]


def diagnose_page(html: str, url: str) -> dict:
    page = parse_page(html, url)
    report = {"url": url, "text_chars": len(page.text), "fields": {}, "missing": [], "filled": []}
    for field in FIELDS:
        source = page.sources.get(field)
        value = getattr(page, field)
        if source is None:
            report["missing"].append(field)
            report["fields"][field] = None
        else:
            report["filled"].append(field)
            report["fields"][field] = {"value": value, "source": source}
    return report


def diagnose_listing(html: str, url: str) -> dict:
    soup = load(html)
    listings = extract_listings(soup, url)
    return {
        "url": url,
        "product_links": len(product_links(soup, url)),
        "listings": len(listings),
        "missing_price": sum(1 for p in listings if not p.price),
        "missing_image": sum(1 for p in listings if not p.image),
        "sample": [p.model_dump(exclude={"score"}) for p in listings[:5]],
    }


def print_page_report(report: dict) -> None:
    print(f"{'=' * 70}")
    print(f"  {report['url']}")
    print(f"{'=' * 70}")
    print(f"  Body text: {report['text_chars']} chars")
    print(f"\n  Filled ({len(report['filled'])}/{len(FIELDS)}):")
    for field in report["filled"]:
        entry = report["fields"][field]
        print(f"    {field:<8} {str(entry['value'])[:80]!s:<80}  via {entry['source']}")
    if report["missing"]:
        print(f"\n  MISSING ({len(report['missing'])}): {report['missing']}")
    print()


def print_listing_report(report: dict) -> None:
    print(f"{'=' * 70}")
    print(f"  {report['url']}")
    print(f"{'=' * 70}")
    print(f"  Product links:  {report['product_links']}")
    print(f"  Listings:       {report['listings']}")
    print(f"  Missing price:  {report['missing_price']}")
    print(f"  Missing image:  {report['missing_image']}")
    for item in report["sample"]:
        print(f"    {item['title'][:50]:<50} {item['price'] or '-':>9}  {item['url']}")
    print()


async def main(urls: list[str], listing: bool) -> None:
    fetcher = Fetcher(TTLCache(ttl=0))
    try:
        for url in urls:
            try:
                html = await fetcher.get(url)
            except FetchError as exc:
                print(f"  {url}: {exc}\n")
                continue
            if listing:
                print_listing_report(diagnose_listing(html, url))
            else:
                print_page_report(diagnose_page(html, url))
    finally:
        await fetcher.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show which extractor strategy filled each field.")
    parser.add_argument("urls", nargs="+")
    parser.add_argument("--listing", action="store_true", help="treat URLs as category/search pages")
    args = parser.parse_args()
    asyncio.run(main(args.urls, args.listing))
