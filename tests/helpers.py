"""
Shared sample data and HTTP doubles for the vibe-dnd tests.

Payloads follow the Open5e v2 response shapes.
"""

from typing import Any, Callable

import httpx

CATALOG_BASE = "https://catalog.test/v2"
SUPABASE_URL = "https://project.supabase.test"
ANON_KEY = "anon-key"
JWT_SECRET = "super-secret-jwt-token-with-at-least-32-characters-long"


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------

RACE_RECORDS = [
    {
        "key": "srd_elf",
        "name": "Elf",
        "desc": "An elf.",
        "is_subspecies": False,
        "subspecies_of": None,
        "traits": [
            {"name": "Darkvision", "desc": "You can see in dim light within 60 feet."},
            {"name": "Keen Senses", "desc": "You have proficiency in the Perception skill."},
        ],
    },
    {
        "key": "srd_human",
        "name": "Human",
        "desc": "A human.",
        "is_subspecies": False,
        "subspecies_of": None,
        "traits": [],
    },
    {
        "key": "srd_high-elf",
        "name": "High Elf",
        "desc": "A high elf.",
        "is_subspecies": True,
        "subspecies_of": {"key": "srd_elf", "name": "Elf", "url": ""},
        "traits": [{"name": "Cantrip", "desc": "You know one wizard cantrip."}],
    },
    {
        "key": "srd_dwarf",
        "name": "Dwarf",
        "desc": "A dwarf.",
        "is_subspecies": False,
        "subspecies_of": None,
        "traits": [],
    },
]

CLASS_RECORDS = [
    {
        "key": "srd_barbarian",
        "name": "Barbarian",
        "desc": "A fierce warrior.",
        "hit_dice": "D12",
        "saving_throws": [{"name": "Strength", "url": ""}, {"name": "Constitution", "url": ""}],
        "subclass_of": None,
    },
    {
        "key": "srd_wizard",
        "name": "Wizard",
        "desc": "A scholarly magic-user.",
        "hit_dice": "D6",
        "saving_throws": [{"name": "Intelligence", "url": ""}, {"name": "Wisdom", "url": ""}],
        "subclass_of": None,
    },
    {
        "key": "srd_evocation",
        "name": "School of Evocation",
        "desc": "You focus your study on magic that creates powerful elemental effects.",
        "hit_dice": "D6",
        "saving_throws": [],
        "subclass_of": {"key": "srd_wizard", "name": "Wizard", "url": ""},
    },
    {
        "key": "srd_illusion",
        "name": "School of Illusion",
        "desc": "You focus your studies on magic that dazzles the senses.",
        "hit_dice": "D6",
        "saving_throws": [],
        "subclass_of": {"key": "srd_wizard", "name": "Wizard", "url": ""},
    },
    {
        "key": "srd_berserker",
        "name": "Path of the Berserker",
        "desc": "For some barbarians, rage is a means to an end.",
        "hit_dice": "D12",
        "saving_throws": [],
        "subclass_of": {"key": "srd_barbarian", "name": "Barbarian", "url": ""},
    },
]

BACKGROUND_RECORDS = [
    {
        "key": "srd_acolyte",
        "name": "Acolyte",
        "desc": "You have spent your life in the service of a temple.",
        "benefits": [
            {"name": "Skill Proficiencies", "desc": "Insight, Religion", "type": "skill_proficiency"},
            {"name": "Shelter of the Faithful", "desc": "You command the respect of the faithful.", "type": "feature"},
        ],
    },
    {
        "key": "srd_sage",
        "name": "Sage",
        "desc": "You spent years learning the lore of the multiverse.",
        "benefits": [],
    },
]

SPELL_RECORDS = [
    {
        "key": "srd_fire-bolt",
        "name": "Fire Bolt",
        "desc": "You hurl a mote of fire.",
        "level": 0,
        "school": {"name": "Evocation", "key": "evocation"},
        "casting_time": "action",
        "range_text": "120 feet",
        "duration": "instantaneous",
        "concentration": False,
        "classes": [{"key": "srd_sorcerer", "name": "Sorcerer"}, {"key": "srd_wizard", "name": "Wizard"}],
    },
    {
        "key": "srd_magic-missile",
        "name": "Magic Missile",
        "desc": "You create three glowing darts of magical force.",
        "level": 1,
        "school": {"name": "Evocation", "key": "evocation"},
        "casting_time": "action",
        "range_text": "120 feet",
        "duration": "instantaneous",
        "concentration": False,
        "classes": [{"key": "srd_wizard", "name": "Wizard"}],
    },
    {
        "key": "srd_cure-wounds",
        "name": "Cure Wounds",
        "desc": "A creature you touch regains hit points.",
        "level": 1,
        "school": {"name": "Evocation", "key": "evocation"},
        "casting_time": "action",
        "range_text": "Touch",
        "duration": "instantaneous",
        "concentration": False,
        "classes": [{"key": "srd_cleric", "name": "Cleric"}],
    },
    {
        "key": "srd_invisibility",
        "name": "Invisibility",
        "desc": "A creature you touch becomes invisible.",
        "level": 2,
        "school": {"name": "Illusion", "key": "illusion"},
        "casting_time": "action",
        "range_text": "Touch",
        "duration": "1 hour",
        "concentration": True,
        "classes": [{"key": "srd_wizard", "name": "Wizard"}],
    },
]


def results(records: list[dict]) -> dict[str, Any]:
    """Wrap records in the Open5e list envelope."""
    return {"count": len(records), "next": None, "previous": None, "results": records}


# ---------------------------------------------------------------------------
# HTTP doubles
# ---------------------------------------------------------------------------

def catalog_handler(
    routes: dict[str, Any],
    calls: list[httpx.Request] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """
    Build a MockTransport handler serving fixed payloads by URL path.

    A route value that is an int is answered with that status code and an
    empty body. Unknown paths answer 404.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        payload = routes.get(request.url.path)
        if payload is None:
            return httpx.Response(404, json={"detail": "Not found."})
        if isinstance(payload, int):
            return httpx.Response(payload)
        return httpx.Response(200, json=payload)

    return handler


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
