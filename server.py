"""
FastAPI server for the storefront chat widget.

Endpoints:
- POST /hbj/chat    → answer for one free-text query
- GET  /hbj/intent  → classified intent for a query (diagnostic)
- GET  /hbj/probe   → sample harvests for checking the scraper against the live site
- GET  /hbj/health  → liveness, ingested document count, version

Informational pages are ingested at startup. The chat endpoint never lets an
exception escape: anything unexpected is logged and becomes a generic 500.
"""

import logging

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, field_validator

from assistant import Assistant
from config import VERSION, get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("server")

SERVER_ERROR_TEXT = "Server error. Try again shortly."
PROBE_SAMPLE = 10


class ChatRequest(BaseModel):
    q: str = ""

    @field_validator("q", mode="before")
    @classmethod
    def coerce_query(cls, v):
        # 123 -> "123", null -> ""
        return "" if v is None else str(v)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

assistant = Assistant.from_settings(settings)

app = FastAPI(
    title="Storefront Chat Assistant",
    version=VERSION,
    default_response_class=ORJSONResponse,
)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    max_age=86400,
)


@app.on_event("startup")
async def startup() -> None:
    try:
        count = await assistant.load_documents()
    except Exception:
        logger.warning("Document ingestion failed, starting without documents", exc_info=True)
        count = 0
    logger.info("Chat assistant v%s booted. Docs: %d", VERSION, count)


@app.on_event("shutdown")
async def shutdown() -> None:
    await assistant.aclose()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post("/hbj/chat")
async def chat(body: ChatRequest):
    """Answer one widget query."""
    try:
        result = await assistant.respond(body.q)
    except Exception:
        logger.exception("Chat error for %r", body.q)
        return ORJSONResponse(status_code=500, content={"error": SERVER_ERROR_TEXT})
    return result.model_dump()


@app.get("/hbj/intent")
async def intent(q: str = ""):
    return {"q": q, "intent": assistant.classify(q)}


@app.get("/hbj/probe")
async def probe(type: str = Query("sterile")):
    """Run one harvest against the live site and return a sample."""
    urls = assistant.urls
    try:
        if type == "course":
            return {"ok": True, "type": type, "course_url": await assistant.course_url()}
        if type == "shipping":
            return {"ok": True, "type": type, "url": urls.shipping}
        if type == "kit":
            result = await assistant.respond("piercing kit")
            return {"ok": True, "type": type, "result": result.model_dump()}
        if type == "homespecials":
            products = await assistant.harvester.harvest_home_kits()
        else:
            category = {"prokits": urls.pro_kits, "safekits": urls.safe_kits}.get(type, urls.sterilized)
            products = await assistant.harvester.harvest_category(category)
    except Exception as exc:
        logger.exception("Probe %s failed", type)
        return ORJSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

    return {
        "ok": True,
        "type": type,
        "count": len(products),
        "sample": [p.model_dump() for p in products[:PROBE_SAMPLE]],
    }


@app.get("/hbj/health")
async def health():
    return {"ok": True, "docs": len(assistant.documents), "version": VERSION}
