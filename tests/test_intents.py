import pytest

import intents
from intents import intent_of


@pytest.mark.parametrize(
    "query, expected",
    [
        ("what is your shipping policy", "shipping"),
        ("can I get a refund please", "shipping"),
        ("how long does it take to ship to canada", "shipping"),
        ("aftercare for a new helix", "aftercare"),
        ("how do I clean my piercing", "aftercare"),
        ("do you sell pre-sterilized jewelry", "sterile"),
        ("is your titanium steril", "sterile"),
        ("do you offer a piercing course", "course"),
        ("apprentice certification", "course"),
        ("how do I contact you", "contact"),
        ("i need help with my order", "contact"),
        ("show me kits", "kit"),
        ("ear piercing kit", "kit"),
        ("16g titanium septum ring", "general"),
    ],
)
def test_intent_with_surrounding_words(query, expected):
    assert intent_of(query) == expected


def test_earlier_rule_wins_when_several_match():
    assert intent_of("sterile kit shipping time") == "shipping"
    assert intent_of("aftercare for sterile jewelry") == "aftercare"
    assert intent_of("sterile piercing class") == "sterile"
    assert intent_of("training kit") == "course"


@pytest.mark.parametrize("query", ["nose", "septum", "nipple", "Tragus", "  daith  ", "ear lobe"])
def test_piercing_shorthand_is_kit_type(query):
    assert intent_of(query) == "kit_type"


def test_shorthand_rejects_long_or_wordy_queries():
    assert intent_of("nose hoop please") == "general"
    assert intent_of("nostrilpiercings") == "general"  # one word, over 12 chars
    assert intent_of("hoop") == "general"


def test_kitten_is_not_a_kit():
    assert intent_of("kitten earrings") == "general"


def test_query_is_normalized():
    assert intents.normalize_query("  Sterile\tKIT \n") == "sterile kit"
    assert intent_of("SHIPPING") == "shipping"
    assert intent_of("") == "general"


def test_rule_order_is_the_documented_precedence():
    assert [rule.tag for rule in intents.RULES] == [
        "shipping",
        "aftercare",
        "sterile",
        "course",
        "contact",
        "kit",
        "kit_type",
    ]
