# ABOUTME: Static localized-string to canonical-token dictionaries for enum and relation fields
# ABOUTME: Covers ja-jp and en-us wiki spellings, composite element expansion and the faction table

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from wiki_harvest.core.models import AttackType, Element, Rarity, Specialty
from wiki_harvest.extraction.normalize import strip_tags

E = TypeVar("E", bound=Enum)

_SUFFIX_PATTERN = re.compile(r"(属性|\s+attribute)$")
_SPACES_PATTERN = re.compile(r"\s+")


def lookup_key(raw: str) -> str:
    """Fold a raw localized label into the form used as dictionary key."""
    key = strip_tags(raw).strip().casefold()
    key = _SUFFIX_PATTERN.sub("", key)
    return _SPACES_PATTERN.sub(" ", key).strip()


SPECIALTY_ALIASES: dict[str, Specialty] = {
    "強攻": Specialty.ATTACK,
    "撃破": Specialty.STUN,
    "異常": Specialty.ANOMALY,
    "支援": Specialty.SUPPORT,
    "防護": Specialty.DEFENSE,
    "命破": Specialty.RUPTURE,
    "attack": Specialty.ATTACK,
    "stun": Specialty.STUN,
    "anomaly": Specialty.ANOMALY,
    "support": Specialty.SUPPORT,
    "defense": Specialty.DEFENSE,
    "defence": Specialty.DEFENSE,
    "rupture": Specialty.RUPTURE,
}

ELEMENT_ALIASES: dict[str, Element] = {
    "エーテル": Element.ETHER,
    "炎": Element.FIRE,
    "氷": Element.ICE,
    "物理": Element.PHYSICAL,
    "電気": Element.ELECTRIC,
    "霜烈": Element.FROST,
    "玄墨": Element.AURIC_INK,
    "ether": Element.ETHER,
    "fire": Element.FIRE,
    "ice": Element.ICE,
    "physical": Element.PHYSICAL,
    "electric": Element.ELECTRIC,
    "frost": Element.FROST,
    "frostattribute": Element.FROST,
    "auric ink": Element.AURIC_INK,
    "auricink": Element.AURIC_INK,
}

ATTACK_TYPE_ALIASES: dict[str, AttackType] = {
    "斬撃": AttackType.SLASH,
    "刺突": AttackType.PIERCE,
    "打撃": AttackType.STRIKE,
    "slash": AttackType.SLASH,
    "pierce": AttackType.PIERCE,
    "strike": AttackType.STRIKE,
}

RARITY_ALIASES: dict[str, Rarity] = {
    "s": Rarity.S,
    "a": Rarity.A,
    "s級": Rarity.S,
    "a級": Rarity.A,
}

# Composite elements stand for more than one canonical element in the output.
ELEMENT_EXPANSIONS: dict[Element, tuple[Element, ...]] = {
    Element.FROST: (Element.ICE, Element.FROST),
    Element.AURIC_INK: (Element.ETHER, Element.AURIC_INK),
}


def translate(raw: str, table: dict[str, E]) -> E | None:
    """Translate a localized label through a dictionary; None when unrecognized."""
    return table.get(lookup_key(raw))


def expand_elements(elements: Iterable[Element]) -> list[Element]:
    """Expand composite elements and de-duplicate, keeping first-seen order."""
    expanded: list[Element] = []
    for element in elements:
        for target in ELEMENT_EXPANSIONS.get(element, (element,)):
            if target not in expanded:
                expanded.append(target)
    return expanded


@dataclass(frozen=True)
class Faction:
    id: int
    ja: str
    en: str


FACTIONS: tuple[Faction, ...] = (
    Faction(1, "邪兎屋", "Cunning Hares"),
    Faction(2, "ヴィクトリア家政", "Victoria Housekeeping Co."),
    Faction(3, "白祇重工", "Belobog Heavy Industries"),
    Faction(4, "防衛軍・オボルス小隊", "Defense Force - Obol Squad"),
    Faction(5, "対ホロウ特別行動部第六課", "Hollow Special Operations Section 6"),
    Faction(6, "特務捜査班", "Criminal Investigation Special Response Team"),
    Faction(7, "カリュドーンの子", "Sons of Calydon"),
    Faction(8, "スターズ・オブ・リラ", "Stars of Lyra"),
    Faction(9, "防衛軍・シルバー小隊", "Defense Force - Silver Squad"),
    Faction(10, "モッキンバード", "Mockingbird"),
    Faction(11, "雲嶽山", "Yunkui Summit"),
    Faction(12, "怪啖屋", "Spook Shack"),
)

FACTION_ALIASES: dict[str, int] = {
    lookup_key(name): faction.id for faction in FACTIONS for name in (faction.ja, faction.en)
}


def resolve_faction(name: str) -> int | None:
    """Resolve a localized faction name to its id."""
    return FACTION_ALIASES.get(lookup_key(name))
