# ABOUTME: Shared fixtures: wiki page payload builders, a fake content client and a sleep recorder
# ABOUTME: Keeps pipeline and mapper tests free of network access and real delays

import json
from typing import Any

import pytest

from wiki_harvest.core.errors import ApiError
from wiki_harvest.core.models import Entry, Locale

LEVEL_KEYS = ["1", "10", "20", "30", "40", "50", "60"]
HP_CURVE = ["677", "1,967", "3,350", "4,733", "6,116", "7,499", "8,416"]
ATK_CURVE = ["105", "197", "298", "399", "500", "601", "653"]
DEF_CURVE = ["49", "129", "218", "307", "396", "485", "532"]
SCALARS = {
    "衝撃力": "119",
    "会心率": "5%",
    "会心ダメージ": "50%",
    "貫通率": "0%",
    "エネルギー自動回復": "1.2",
}

ALWAYS = -1


def build_ascension(
    hp: list[Any] | None = None,
    atk: list[Any] | None = None,
    defense: list[Any] | None = None,
    scalars: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the decoded ascension component: one combatList per level, [before, after] values."""
    hp = hp or HP_CURVE
    atk = atk or ATK_CURVE
    defense = defense or DEF_CURVE
    scalars = SCALARS if scalars is None else scalars

    levels = []
    for index, key in enumerate(LEVEL_KEYS):
        combat = [
            {"key": "HP", "values": ["-", hp[index]]},
            {"key": "攻撃力", "values": ["-", atk[index]]},
            {"key": "防御力", "values": ["-", defense[index]]},
        ]
        if index == 0:
            combat.extend({"key": stat, "values": ["-", value]} for stat, value in scalars.items())
        levels.append({"key": key, "combatList": combat})
    return {"list": levels}


def build_page(
    page_id: str = "28",
    name: str = "フォン・ライカン",
    specialty: str | None = "撃破",
    element: str | None = "氷属性",
    rarity: str | None = "S",
    attack_type: str | None = "打撃",
    factions: list[str] | None = None,
    version: str = "Ver.1.0",
    ascension: dict[str, Any] | str | None = None,
    include_ascension: bool = True,
) -> dict[str, Any]:
    """Build a HoyoLab page object as returned under data.page."""
    filters: dict[str, Any] = {}
    if specialty is not None:
        filters["agent_specialties"] = {"values": [specialty]}
    if element is not None:
        filters["agent_stats"] = {"values": [element]}
    if rarity is not None:
        filters["agent_rarity"] = {"values": [rarity]}
    if attack_type is not None:
        filters["agent_attack_type"] = {"values": [attack_type]}
    filters["agent_faction"] = {"values": ["ヴィクトリア家政"] if factions is None else factions}

    base_info = {"list": [{"key": "実装バージョン", "values": [version]}]}
    modules: list[dict[str, Any]] = [
        {"name": "ステータス", "components": [{"component_id": "baseInfo", "data": json.dumps(base_info)}]},
    ]
    if include_ascension:
        data = ascension if isinstance(ascension, str) else json.dumps(ascension or build_ascension())
        modules.append({"name": "突破", "components": [{"component_id": "ascension", "data": data}]})

    return {"id": page_id, "name": name, "filter_values": filters, "modules": modules}


def build_envelope(page: dict[str, Any], retcode: int = 0) -> dict[str, Any]:
    return {"retcode": retcode, "message": "OK", "data": {"page": page}}


class FakeContentClient:
    """In-memory ContentClient.

    pages maps a source ref, or a (source ref, locale) pair, to a page object.
    failures maps a source ref to the number of fetches that fail first, or ALWAYS.
    """

    def __init__(self, pages: dict[Any, dict[str, Any]], failures: dict[Any, int] | None = None):
        self.pages = pages
        self.failures = dict(failures or {})
        self.calls: list[tuple[Any, Locale]] = []

    async def fetch(self, source_ref, locale):
        self.calls.append((source_ref, locale))
        remaining = self.failures.get(source_ref, 0)
        if remaining == ALWAYS or remaining > 0:
            if remaining != ALWAYS:
                self.failures[source_ref] = remaining - 1
            raise ApiError(f"page {source_ref} unavailable")

        page = self.pages.get((source_ref, locale), self.pages.get(source_ref))
        if page is None:
            raise ApiError(f"page {source_ref} not found")
        return page

    def calls_for(self, source_ref) -> int:
        return sum(1 for ref, _ in self.calls if ref == source_ref)


class SleepRecorder:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def page_factory():
    return build_page


@pytest.fixture
def ascension_factory():
    return build_ascension


@pytest.fixture
def envelope_factory():
    return build_envelope


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_client():
    def _make(pages, failures=None):
        return FakeContentClient(pages, failures)

    return _make


@pytest.fixture
def make_entries():
    """Entries agent-0..agent-N with source refs 100.. and a page for each."""

    def _make(count: int):
        entries = [Entry(id=f"agent-{i}", source_ref=100 + i, display_name=f"Agent {i}") for i in range(count)]
        pages = {
            entry.source_ref: build_page(page_id=str(entry.source_ref), name=f"エージェント{i}")
            for i, entry in enumerate(entries)
        }
        return entries, pages

    return _make
