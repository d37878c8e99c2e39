"""
Intent classification.

An ordered table of (predicate, tag) rules evaluated top-down; the first match
wins. Policy questions sit above product words on purpose, so "sterile kit
shipping time" is a shipping question, not a product search.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

SHIPPING = "shipping"
AFTERCARE = "aftercare"
STERILE = "sterile"
COURSE = "course"
CONTACT = "contact"
KIT = "kit"
KIT_TYPE = "kit_type"
GENERAL = "general"

INTENTS = (SHIPPING, AFTERCARE, STERILE, COURSE, CONTACT, KIT, KIT_TYPE, GENERAL)

# Piercing locations and types. A one- or two-word query naming one of these
# is read as "show me kits for this piercing".
PIERCING_TYPES = frozenset(
    {
        "ear", "ears", "lobe", "lobes", "cartilage", "helix", "tragus", "daith", "rook",
        "conch", "snug", "industrial", "nose", "nostril", "septum", "bridge", "eyebrow",
        "brow", "lip", "labret", "monroe", "medusa", "smiley", "tongue", "navel", "belly",
        "nipple", "nipples", "dermal", "surface", "genital", "christina", "vch", "hch",
        "hood", "clit", "prince", "albert", "pa", "apadravya", "ampallang", "frenum",
        "guiche", "scrotum",
    }
)
MAX_SHORTHAND_WORDS = 2
MAX_SHORTHAND_WORD_CHARS = 12
TRAILING_PUNCTUATION = "?!.,"

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class IntentRule:
    tag: str
    matches: Callable[[str], bool]


def _pattern(regex: str) -> Callable[[str], bool]:
    compiled = re.compile(regex, re.IGNORECASE)
    return lambda s: bool(compiled.search(s))


def _is_piercing_shorthand(s: str) -> bool:
    words = s.split()
    if not words or len(words) > MAX_SHORTHAND_WORDS:
        return False
    if any(len(w) > MAX_SHORTHAND_WORD_CHARS for w in words):
        return False
    return any(w.strip(TRAILING_PUNCTUATION) in PIERCING_TYPES for w in words)


RULES: list[IntentRule] = [
    IntentRule(
        SHIPPING,
        _pattern(r"(shipping|returns?|return policy|refund|exchange|delivery|how long.*ship|ship.*time)"),
    ),
    IntentRule(AFTERCARE, _pattern(r"(aftercare|after care|care instructions|clean|saline|healing)")),
    IntentRule(STERILE, _pattern(r"steril")),
    IntentRule(COURSE, _pattern(r"(course|training|apprentice|class|master class|certification)")),
    IntentRule(
        CONTACT,
        _pattern(
            r"(contact|customer (service|support)|\bsupport\b|\bhelp\b|talk to (a )?(human|person|someone)"
            r"|phone number|\bemail\b)"
        ),
    ),
    IntentRule(KIT, _pattern(r"\bkits?\b")),
    IntentRule(KIT_TYPE, _is_piercing_shorthand),
]


def normalize_query(query: str) -> str:
    return _WS_RE.sub(" ", (query or "").lower()).strip()


def intent_of(query: str) -> str:
    s = normalize_query(query)
    for rule in RULES:
        if rule.matches(s):
            return rule.tag
    return GENERAL
