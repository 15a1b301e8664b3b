# ABOUTME: Maps raw wiki page payloads into AgentRecord instances
# ABOUTME: Locates modules by alias, decodes embedded JSON and translates localized labels

import json
import re
from collections.abc import Iterable
from enum import Enum
from typing import Any, TypeVar

import structlog

from wiki_harvest.core.errors import MappingError, UnrecognizedValueError
from wiki_harvest.core.models import (
    ASCENSION_LEVEL_KEYS,
    DEFAULT_ELEMENT,
    DEFAULT_RARITY,
    DEFAULT_SPECIALTY,
    AgentRecord,
    AssistType,
    AttackType,
    Attributes,
    Element,
    Entry,
    Locale,
    LocalizedName,
    RawPayload,
)
from wiki_harvest.extraction.normalize import map_level_curve, normalize_scalar_or_default, strip_tags
from wiki_harvest.extraction.vocabulary import (
    ATTACK_TYPE_ALIASES,
    ELEMENT_ALIASES,
    RARITY_ALIASES,
    SPECIALTY_ALIASES,
    expand_elements,
    resolve_faction,
    translate,
)
from wiki_harvest.utils.logging import get_logger

E = TypeVar("E", bound=Enum)

# Module names differ per locale; components keep a stable id.
ASCENSION_MODULES = ("ascension", "突破", "Ascension")
ASCENSION_COMPONENT = "ascension"
BASE_INFO_MODULES = ("baseInfo", "ステータス", "Stats", "基本情報", "Basic Info")
BASE_INFO_COMPONENT = "baseInfo"
SKILL_MODULE_MARKERS = ("スキル", "Skills")
TALENT_COMPONENT = "agent_talent"
ASSIST_SKILL_MARKERS = ("支援", "Support")
ASSIST_TYPE_MARKERS: dict[AssistType, tuple[str, ...]] = {
    AssistType.DEFENSIVE: ("パリィ支援", "Defensive Assist"),
    AssistType.EVASIVE: ("回避支援", "Evasive Assist"),
}

CURVE_STAT_KEYS: dict[str, tuple[str, ...]] = {
    "hp": ("HP", "Base HP"),
    "atk": ("攻撃力", "ATK", "Base ATK"),
    "defense": ("防御力", "DEF", "Base DEF"),
}

SCALAR_STAT_KEYS: dict[str, tuple[str, ...]] = {
    "impact": ("衝撃力", "Impact"),
    "crit_rate": ("会心率", "CRIT Rate"),
    "crit_dmg": ("会心ダメージ", "CRIT DMG"),
    "anomaly_mastery": ("異常マスタリー", "Anomaly Mastery"),
    "anomaly_proficiency": ("異常掌握", "Anomaly Proficiency"),
    "pen_ratio": ("貫通率", "PEN Ratio"),
    "energy": ("エネルギー自動回復", "Energy Regen"),
}

SPECIALTY_KEYS = ("特性", "Specialty")
ELEMENT_KEYS = ("属性", "Attribute")
RARITY_KEYS = ("レア度", "Rarity")
ATTACK_TYPE_KEYS = ("攻撃タイプ", "Attack Type")
FACTION_KEY_MARKERS = ("陣営", "派閥", "faction")
VERSION_KEY_MARKERS = ("実装バージョン", "ver.", "version")

SPECIALTY_FILTER = "agent_specialties"
ELEMENT_FILTER = "agent_stats"
RARITY_FILTER = "agent_rarity"
ATTACK_TYPE_FILTER = "agent_attack_type"
FACTION_FILTER = "agent_faction"

_VERSION_PATTERN = re.compile(r"Ver\.?\s*(\d+\.\d+)", re.IGNORECASE)
_BARE_VERSION_PATTERN = re.compile(r"^(\d+\.\d+)")


def _fold(text: str) -> str:
    return text.strip().casefold()


def _key_matches(key: object, candidates: Iterable[str]) -> bool:
    if not isinstance(key, str):
        return False
    folded = _fold(strip_tags(key))
    return any(folded == _fold(candidate) for candidate in candidates)


def _key_contains(key: object, markers: Iterable[str]) -> bool:
    if not isinstance(key, str):
        return False
    folded = _fold(strip_tags(key))
    return any(_fold(marker) in folded for marker in markers)


def _item_values(item: dict[str, Any]) -> list[Any]:
    """Values of one baseInfo item; the wiki uses both "values" and "value"."""
    for field in ("values", "value"):
        raw = item.get(field)
        if isinstance(raw, list):
            return [value for value in raw if value not in (None, "")]
        if raw not in (None, ""):
            return [raw]
    return []


def _assist_type_of(text: object) -> AssistType | None:
    for assist_type, markers in ASSIST_TYPE_MARKERS.items():
        if _key_contains(text, markers):
            return assist_type
    return None


class RecordMapper:
    """Turns one raw page payload into an AgentRecord.

    Required fields (name, specialty, element, rarity and the ascension curves)
    raise MappingError when absent. Optional fields fall back to empty values
    and only log a warning.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self.logger = logger or get_logger(__name__)

    def map(self, payload: RawPayload, entry: Entry | str, locale: Locale = Locale.JA_JP) -> AgentRecord:
        """Map a raw payload for one entry.

        Args:
            payload: Raw API payload, either the full response or its page object
            entry: The entry being mapped, or just its id
            locale: Locale the payload was fetched in

        Returns:
            The mapped record

        Raises:
            MappingError: If a required field is missing or malformed
        """
        entry_id = entry.id if isinstance(entry, Entry) else entry
        log = self.logger.bind(entry_id=entry_id, locale=Locale(locale).value)

        try:
            page = self._unwrap_page(payload)
            name = self.extract_name(page)
            base_info = self._base_info_items(page, log)
            filters = page.get("filter_values") if isinstance(page.get("filter_values"), dict) else {}

            specialty = self._map_single(
                "specialty",
                self._filter_values(filters, SPECIALTY_FILTER) or self._scan(base_info, SPECIALTY_KEYS),
                SPECIALTY_ALIASES,
                DEFAULT_SPECIALTY,
                log,
            )
            elements = self._map_elements(
                self._filter_values(filters, ELEMENT_FILTER) or self._scan(base_info, ELEMENT_KEYS), log
            )
            rarity = self._map_single(
                "rarity",
                self._filter_values(filters, RARITY_FILTER) or self._scan(base_info, RARITY_KEYS),
                RARITY_ALIASES,
                DEFAULT_RARITY,
                log,
            )
            attack_types = self._map_attack_types(
                self._filter_values(filters, ATTACK_TYPE_FILTER) or self._scan(base_info, ATTACK_TYPE_KEYS), log
            )
            factions = self._map_factions(filters, base_info, log)
            release_version = self._extract_release_version(base_info)
            attributes = self._map_attributes(page, log)
            assist_type = self._map_assist_type(page, log)
        except MappingError as e:
            e.with_entry(entry_id)
            raise

        record = AgentRecord(
            id=entry_id,
            page_id=page.get("id") or (entry.source_ref if isinstance(entry, Entry) else None),
            name=LocalizedName(ja=name, en=name),
            specialty=specialty,
            elements=elements,
            attack_types=attack_types,
            assist_type=assist_type,
            rarity=rarity,
            factions=factions,
            attributes=attributes,
            release_version=release_version,
        )
        log.debug("Mapped record", specialty=specialty.value, rarity=rarity.value, factions=factions)
        return record

    def extract_name(self, payload: RawPayload) -> str:
        """Extract the page name from a payload.

        Raises:
            MappingError: If the payload carries no usable name
        """
        page = self._unwrap_page(payload)
        raw_name = page.get("name")
        if not isinstance(raw_name, str):
            raise MappingError("name", "page has no name")
        name = strip_tags(raw_name).strip()
        if not name:
            raise MappingError("name", "page name is empty")
        return name

    def map_level_curve(self, values: list[Any], field: str = "curve") -> list[float]:
        """Normalize one per-level curve, raising MappingError for malformed input."""
        try:
            return map_level_curve(values)
        except (UnrecognizedValueError, ValueError) as e:
            raise MappingError(field, str(e), cause=e) from e

    # Payload navigation

    @staticmethod
    def _unwrap_page(payload: RawPayload) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise MappingError("page", "payload is not an object")
        data = payload.get("data")
        if isinstance(data, dict) and "page" in data:
            page = data["page"]
            if not isinstance(page, dict):
                raise MappingError("page", "data.page is not an object")
            return page
        return payload

    @staticmethod
    def _find_component(
        page: dict[str, Any], module_names: tuple[str, ...], component_id: str, partial: bool = False
    ) -> dict | None:
        """Find a component by id inside the first matching module.

        With ``partial`` a module matches when its name contains one of
        ``module_names`` rather than equalling it.
        """
        modules = page.get("modules")
        if not isinstance(modules, list):
            return None
        for module in modules:
            if not isinstance(module, dict):
                continue
            name = module.get("name")
            if not (_key_contains(name, module_names) if partial else name in module_names):
                continue
            components = module.get("components")
            if not isinstance(components, list):
                continue
            for component in components:
                if isinstance(component, dict) and component.get("component_id") == component_id:
                    return component
        return None

    @staticmethod
    def _decode_component(component: dict[str, Any], field: str) -> dict[str, Any]:
        data = component.get("data")
        if isinstance(data, dict):
            return data
        if not isinstance(data, str) or not data.strip():
            raise MappingError("payload-decode", f"{field} component carries no data")
        try:
            document = json.loads(data)
        except json.JSONDecodeError as e:
            raise MappingError("payload-decode", f"{field} component is not valid JSON: {e.msg}", cause=e) from e
        if not isinstance(document, dict):
            raise MappingError("payload-decode", f"{field} component is not a JSON object")
        return document

    def _base_info_items(self, page: dict[str, Any], log: structlog.stdlib.BoundLogger) -> list[dict[str, Any]]:
        component = self._find_component(page, BASE_INFO_MODULES, BASE_INFO_COMPONENT)
        if component is None:
            log.debug("No baseInfo module on page")
            return []
        try:
            document = self._decode_component(component, "baseInfo")
        except MappingError as e:
            log.warning("Ignoring undecodable baseInfo module", reason=e.reason)
            return []
        items = document.get("list")
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]

    @staticmethod
    def _filter_values(filters: dict[str, Any], key: str) -> list[Any]:
        entry = filters.get(key)
        if not isinstance(entry, dict):
            return []
        values = entry.get("values")
        if not isinstance(values, list):
            return []
        return [value for value in values if value not in (None, "")]

    @staticmethod
    def _scan(items: list[dict[str, Any]], keys: tuple[str, ...]) -> list[Any]:
        for item in items:
            if _key_matches(item.get("key"), keys):
                return _item_values(item)
        return []

    # Field mapping

    def _map_single(
        self,
        field: str,
        raws: list[Any],
        table: dict[str, E],
        default: E,
        log: structlog.stdlib.BoundLogger,
    ) -> E:
        labels = [raw for raw in raws if isinstance(raw, str) and raw.strip()]
        if not labels:
            raise MappingError(field, "not present in filter values or baseInfo")
        value = translate(labels[0], table)
        if value is None:
            log.warning("Unrecognized value, using default", field=field, raw=labels[0], default=default.value)
            return default
        return value

    def _map_elements(self, raws: list[Any], log: structlog.stdlib.BoundLogger) -> list[Element]:
        labels = [raw for raw in raws if isinstance(raw, str) and raw.strip()]
        if not labels:
            raise MappingError("element", "not present in filter values or baseInfo")
        elements: list[Element] = []
        for label in labels:
            element = translate(label, ELEMENT_ALIASES)
            if element is None:
                log.warning("Unrecognized element dropped", field="element", raw=label)
                continue
            elements.append(element)
        if not elements:
            log.warning("No recognized element, using default", default=DEFAULT_ELEMENT.value)
            elements = [DEFAULT_ELEMENT]
        return expand_elements(elements)

    def _map_attack_types(self, raws: list[Any], log: structlog.stdlib.BoundLogger) -> list[AttackType]:
        attack_types: list[AttackType] = []
        for raw in raws:
            if not isinstance(raw, str):
                continue
            attack_type = translate(raw, ATTACK_TYPE_ALIASES)
            if attack_type is None:
                log.warning("Unrecognized attack type dropped", field="attack_types", raw=raw)
            elif attack_type not in attack_types:
                attack_types.append(attack_type)
        return attack_types

    def _map_factions(
        self, filters: dict[str, Any], base_info: list[dict[str, Any]], log: structlog.stdlib.BoundLogger
    ) -> list[int]:
        raws = self._filter_values(filters, FACTION_FILTER)
        if not raws:
            for item in base_info:
                if _key_contains(item.get("key"), FACTION_KEY_MARKERS):
                    raws.extend(_item_values(item))

        faction_ids: list[int] = []
        for raw in raws:
            faction_id = self._resolve_faction_value(raw, log)
            if faction_id is not None and faction_id not in faction_ids:
                faction_ids.append(faction_id)
        return faction_ids

    @staticmethod
    def _resolve_faction_value(raw: Any, log: structlog.stdlib.BoundLogger) -> int | None:
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw if raw > 0 else None
        if not isinstance(raw, str):
            return None

        name = raw.strip()
        # Linked values arrive wrapped as $[{"ep_id": ..., "name": ...}]$
        if name.startswith("$[") and name.endswith("]$"):
            try:
                linked = json.loads(name[2:-2])
            except json.JSONDecodeError:
                log.warning("Undecodable faction reference dropped", raw=raw)
                return None
            if isinstance(linked, list):
                linked = linked[0] if linked else {}
            name = linked.get("name", "") if isinstance(linked, dict) else ""

        faction_id = resolve_faction(name) if isinstance(name, str) and name else None
        if faction_id is None:
            log.warning("Unresolvable faction dropped", raw=raw)
        return faction_id

    @staticmethod
    def _extract_release_version(base_info: list[dict[str, Any]]) -> float:
        for item in base_info:
            key = item.get("key")
            if not _key_contains(key, VERSION_KEY_MARKERS):
                continue
            for value in [key, *_item_values(item)]:
                if not isinstance(value, str):
                    continue
                text = strip_tags(value).strip()
                match = _VERSION_PATTERN.search(text)
                if match is None and value is not key:
                    match = _BARE_VERSION_PATTERN.match(text)
                if match:
                    return float(match.group(1))
        return 0.0

    def _map_assist_type(self, page: dict[str, Any], log: structlog.stdlib.BoundLogger) -> AssistType | None:
        """Assist type named by the talent module's assist skill.

        Child titles are checked before attribute keys. Any gap in the talent
        data yields None.
        """
        component = self._find_component(page, SKILL_MODULE_MARKERS, TALENT_COMPONENT, partial=True)
        if component is None:
            log.debug("No talent module on page")
            return None
        try:
            document = self._decode_component(component, "agent_talent")
        except MappingError as e:
            log.warning("Ignoring undecodable talent module", reason=e.reason)
            return None

        skills = document.get("list")
        if not isinstance(skills, list):
            return None
        assist_skill = next(
            (
                skill
                for skill in skills
                if isinstance(skill, dict) and _key_contains(skill.get("title"), ASSIST_SKILL_MARKERS)
            ),
            None,
        )
        if assist_skill is None:
            log.debug("No assist skill in talent module")
            return None

        for source, label in (("children", "title"), ("attributes", "key")):
            items = assist_skill.get(source)
            if not isinstance(items, list):
                continue
            for item in items:
                assist_type = _assist_type_of(item.get(label)) if isinstance(item, dict) else None
                if assist_type is not None:
                    return assist_type

        log.debug("Assist skill names no assist type", skill=assist_skill.get("title"))
        return None

    def _map_attributes(self, page: dict[str, Any], log: structlog.stdlib.BoundLogger) -> Attributes:
        component = self._find_component(page, ASCENSION_MODULES, ASCENSION_COMPONENT)
        if component is None:
            raise MappingError("attributes", "ascension module not found")

        document = self._decode_component(component, "ascension")
        levels = document.get("list")
        if not isinstance(levels, list):
            raise MappingError("attributes", "ascension data has no level list")

        by_level = {str(level.get("key", "")).strip(): level for level in levels if isinstance(level, dict)}

        curves: dict[str, list[float]] = {}
        for field, keys in CURVE_STAT_KEYS.items():
            raw_curve = []
            for level_key in ASCENSION_LEVEL_KEYS:
                level = by_level.get(level_key)
                if level is None:
                    raise MappingError(field, f"ascension level {level_key} missing")
                raw_value = self._find_stat(level, keys)
                if raw_value is None:
                    raise MappingError(field, f"no value at ascension level {level_key}")
                raw_curve.append(raw_value)
            curves[field] = self.map_level_curve(raw_curve, field)

        scalars: dict[str, float] = {}
        first_level = by_level.get(ASCENSION_LEVEL_KEYS[0], {})
        for field, keys in SCALAR_STAT_KEYS.items():
            raw_value = self._find_stat(first_level, keys)
            if raw_value is None:
                scalars[field] = 0.0
                continue
            scalars[field], recognized = normalize_scalar_or_default(raw_value)
            if not recognized:
                log.warning("Unrecognized stat value, using 0", field=field, raw=raw_value)

        return Attributes(**curves, **scalars)

    @staticmethod
    def _find_stat(level: dict[str, Any], keys: tuple[str, ...]) -> Any | None:
        """Post-ascension value of a stat at one level; None if the stat is absent."""
        combat = level.get("combatList")
        if not isinstance(combat, list):
            return None
        for stat in combat:
            if not isinstance(stat, dict) or not _key_matches(stat.get("key"), keys):
                continue
            values = stat.get("values")
            if isinstance(values, list) and values:
                return values[1] if len(values) > 1 else values[0]
            return None
        return None
