"""
Runtime configuration.

Settings come from environment variables (a ``.env`` file is loaded first if
present). The rules and pages files are optional: a missing or malformed file
falls back to an empty configuration so the assistant can still answer
generic questions.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path

import orjson
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from models import PagesConfig, Rules

logger = logging.getLogger(__name__)

VERSION = "1.9.0"

BASE_DIR = Path(__file__).parent

DEFAULT_SITE_URL = "https://www.hottiebodyjewelry.com"
DEFAULT_ALLOWED_ORIGINS = [
    "https://www.hottiebodyjewelry.com",
    "https://hottiebodyjewelry.com",
    "http://localhost:3001",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# The course page lives at one fixed address no matter which site is configured
CANON_COURSE_URL = "https://www.hottiebodyjewelry.com/Master-Body-Piercing-Class-COMING-SOON_p_363.html"


class SiteUrls(BaseModel):
    """Fixed pages on the storefront."""

    site: str
    home: str
    sterilized: str
    pro_kits: str
    safe_kits: str
    aftercare: str
    shipping: str
    about: str
    contact: str
    search: str  # keyword search endpoint, query appended

    @classmethod
    def for_site(cls, site: str) -> "SiteUrls":
        site = site.rstrip("/")
        return cls(
            site=site,
            home=site + "/",
            sterilized=f"{site}/Sterilized-Body-Jewelry_c_42.html",
            pro_kits=f"{site}/Professional-Piercing-Kits_c_7.html",
            safe_kits=f"{site}/Safe-and-Sterile-Piercing-Kits_c_1.html",
            aftercare=f"{site}/Aftercare_ep_42-1.html",
            shipping=f"{site}/Shipping-and-Returns_ep_43-1.html",
            about=f"{site}/About-Us_ep_7.html",
            contact=f"{site}/crm.asp?action=contactus",
            search=f"{site}/search.asp?keyword=",
        )


class Settings(BaseModel):
    """Process settings. Field aliases are the environment variable names."""

    model_config = ConfigDict(populate_by_name=True)

    site_url: str = Field(default=DEFAULT_SITE_URL, alias="SITE_URL")
    allowed_origins: list[str] = Field(default=DEFAULT_ALLOWED_ORIGINS, alias="ALLOWED_ORIGINS")
    rules_file: Path = Field(default=BASE_DIR / "rules.json", alias="RULES_FILE")
    pages_file: Path = Field(default=BASE_DIR / "pages.json", alias="PAGES_FILE")
    page_ttl: float = Field(default=600.0, alias="PAGE_TTL")  # raw HTML per URL
    catalog_ttl: float = Field(default=900.0, alias="CATALOG_TTL")  # harvested category / search / home-kit sets
    chat_ttl: float = Field(default=120.0, alias="CHAT_TTL")  # composed answers per normalized query
    fetch_timeout: float = Field(default=15.0, alias="FETCH_TIMEOUT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def urls(self) -> SiteUrls:
        return SiteUrls.for_site(self.site_url)

    @classmethod
    def field_default(cls, info: ValidationInfo):
        return cls.model_fields[info.field_name].default

    @field_validator("site_url", "log_level", mode="before")
    @classmethod
    def text_or_default(cls, v, info: ValidationInfo):
        if v is None or not str(v).strip():
            return cls.field_default(info)
        v = str(v).strip()
        return v.upper() if info.field_name == "log_level" else v

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def comma_separated(cls, v, info: ValidationInfo):
        if isinstance(v, str):
            v = [item.strip() for item in v.split(",") if item.strip()]
        return v or list(cls.field_default(info))

    @field_validator("rules_file", "pages_file", mode="before")
    @classmethod
    def project_relative(cls, v, info: ValidationInfo):
        if v is None or not str(v).strip():
            return cls.field_default(info)
        path = Path(v)
        return path if path.is_absolute() else BASE_DIR / path

    @field_validator("page_ttl", "catalog_ttl", "chat_ttl", "fetch_timeout", mode="before")
    @classmethod
    def non_negative_seconds(cls, v, info: ValidationInfo):
        default = cls.field_default(info)
        if v is None or (isinstance(v, str) and not v.strip()):
            return default
        try:
            value = float(v)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s=%r, using %s", info.field_name.upper(), v, default)
            return default
        if value < 0:
            logger.warning("Ignoring negative %s=%r, using %s", info.field_name.upper(), v, default)
            return default
        return value


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    return Settings(**os.environ)


# ---------------------------------------------------------------------------
# Rules / pages files
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict | None:
    if not path.exists():
        logger.info("%s not found, using defaults", path.name)
        return None
    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError):
        logger.warning("Could not read %s, using defaults", path, exc_info=True)
        return None
    if not isinstance(data, dict):
        logger.warning("%s is not a JSON object, using defaults", path)
        return None
    return data


def load_rules(path: Path) -> Rules:
    data = _read_json(path)
    if data is None:
        return Rules()
    try:
        return Rules.model_validate(data)
    except ValidationError:
        logger.warning("Invalid rules in %s, using defaults", path, exc_info=True)
        return Rules()


def load_pages(path: Path) -> PagesConfig:
    data = _read_json(path)
    if data is None:
        return PagesConfig()
    try:
        return PagesConfig.model_validate(data)
    except ValidationError:
        logger.warning("Invalid pages config in %s, using defaults", path, exc_info=True)
        return PagesConfig()
