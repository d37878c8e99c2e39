"""
Informational pages (shipping, aftercare, about, ...) for free-text snippet lookup.

Pages listed in the pages file are fetched once at startup; pages that fail
to load, or carry too little text to be useful, are skipped.
"""

import logging
import re

from fetcher import Fetcher, FetchError
from models import Document, PagesConfig, Snippet
from parser import extract_image, extract_text, extract_title, load

logger = logging.getLogger(__name__)

MIN_DOCUMENT_CHARS = 200
SNIPPET_LEAD_CHARS = 260
SNIPPET_CHARS = 800

# (query pattern, document pattern, bonus) for topic-level agreement
_TOPIC_BONUSES = [
    (re.compile(r"ship|delivery|return|refund|exchange", re.I), re.compile(r"ship|return|refund|exchange", re.I), 5),
    (re.compile(r"aftercare|after care|clean|saline|healing", re.I), re.compile(r"aftercare|clean|saline|healing", re.I), 5),
    (re.compile(r"steril", re.I), re.compile(r"steril", re.I), 5),
    (re.compile(r"kit", re.I), re.compile(r"kit", re.I), 3),
    (
        re.compile(r"course|training|apprentice|class|certification", re.I),
        re.compile(r"course|training|apprentice|class|certification", re.I),
        4,
    ),
]


def score_document(query: str, doc: Document) -> int:
    hay = doc.text.lower()
    total = sum(2 for term in query.lower().split() if term in hay)
    for query_re, doc_re, bonus in _TOPIC_BONUSES:
        if query_re.search(query) and doc_re.search(hay):
            total += bonus
    return total


class DocumentStore:
    def __init__(self, documents: list[Document] | None = None):
        self.documents: list[Document] = documents or []

    def __len__(self) -> int:
        return len(self.documents)

    async def load(self, pages: PagesConfig, fetcher: Fetcher, ttl: float | None = None) -> int:
        """Fetch and index every configured page. Returns the number kept."""
        documents: list[Document] = []
        for entry in pages.pages:
            try:
                html = await fetcher.get(entry.url, ttl)
            except FetchError as exc:
                logger.warning("Skipping page %s: %s", entry.url, exc)
                continue
            soup = load(html)
            text = extract_text(soup, entry.selector)
            if len(text) <= MIN_DOCUMENT_CHARS:
                logger.info("Skipping page %s: only %d chars of text", entry.url, len(text))
                continue
            documents.append(
                Document(
                    url=entry.url,
                    title=extract_title(soup, entry.url) or entry.url,
                    text=text,
                    image=extract_image(soup, entry.url),
                )
            )
        self.documents = documents
        logger.info("Loaded %d/%d informational pages", len(documents), len(pages.pages))
        return len(documents)

    def search(self, query: str) -> Snippet | None:
        """Best-matching document, cut to a snippet around the query's first word."""
        if not self.documents or not query.strip():
            return None

        best = max(self.documents, key=lambda d: score_document(query, d))
        if score_document(query, best) <= 0:
            return None

        need = query.split()[0].lower()
        idx = max(0, best.text.lower().find(need))
        start = max(0, idx - SNIPPET_LEAD_CHARS)
        end = min(len(best.text), start + SNIPPET_CHARS)
        return Snippet(title=best.title, url=best.url, snippet=best.text[start:end], image=best.image)
