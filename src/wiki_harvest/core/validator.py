# ABOUTME: Structural validation of mapped agent records
# ABOUTME: Reports errors and warnings as a ValidationResult and never raises

import math
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

from wiki_harvest.core.models import (
    CURVE_LENGTH,
    AgentRecord,
    AssistType,
    AttackType,
    Element,
    Rarity,
    Specialty,
    ValidationResult,
)
from wiki_harvest.utils.logging import get_logger

CURVE_FIELDS = ("hp", "atk", "defense")
SCALAR_FIELDS = (
    "impact",
    "crit_rate",
    "crit_dmg",
    "anomaly_mastery",
    "anomaly_proficiency",
    "pen_ratio",
    "energy",
)


def _enum_match(raw: Any, enum_type: type[Enum]) -> tuple[bool, bool]:
    """Return (matches, exact) for a raw value against an enum's values."""
    if isinstance(raw, enum_type):
        return True, True
    if not isinstance(raw, str):
        return False, False
    values = {member.value for member in enum_type}
    if raw in values:
        return True, True
    folded = "".join(raw.split()).casefold()
    return any(folded == value.casefold() for value in values), False


class RecordValidator:
    """Checks mapped records against the structural invariants of the output schema.

    Accepts an AgentRecord or a plain mapping with the same shape, so records
    that bypassed model validation can still be checked. Validation is pure:
    the same input always produces the same result.
    """

    def __init__(self):
        self.logger = get_logger(__name__)

    def validate(self, record: AgentRecord | Mapping[str, Any]) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        try:
            data = self._as_mapping(record)
            self._check_identity(data, errors, warnings)
            self._check_enums(data, errors, warnings)
            self._check_attributes(data, errors, warnings)
            self._check_factions(data, errors)
            self._check_release_version(data, errors)
            if data.get("degraded"):
                warnings.append("record was degraded to entry metadata only")
        except Exception as e:
            self.logger.warning("Validator could not inspect record", error=str(e), error_type=type(e).__name__)
            errors.append(f"record could not be inspected: {type(e).__name__}: {e}")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def _as_mapping(record: AgentRecord | Mapping[str, Any]) -> Mapping[str, Any]:
        if isinstance(record, BaseModel):
            return record.model_dump()
        if isinstance(record, Mapping):
            return record
        raise TypeError(f"expected a record or mapping, got {type(record).__name__}")

    @staticmethod
    def _check_identity(data: Mapping[str, Any], errors: list[str], warnings: list[str]) -> None:
        record_id = data.get("id")
        if not isinstance(record_id, str) or not record_id.strip():
            errors.append("id is missing or empty")

        name = data.get("name")
        if not isinstance(name, Mapping):
            errors.append("name is missing")
            return
        ja = name.get("ja")
        if not isinstance(ja, str) or not ja.strip():
            errors.append("name.ja is missing or empty")
        en = name.get("en")
        if not isinstance(en, str) or not en.strip():
            warnings.append("name.en is missing or empty")

    @staticmethod
    def _check_enums(data: Mapping[str, Any], errors: list[str], warnings: list[str]) -> None:
        single_fields: dict[str, type[Enum]] = {"specialty": Specialty, "rarity": Rarity}
        for field, enum_type in single_fields.items():
            matches, exact = _enum_match(data.get(field), enum_type)
            if not matches:
                errors.append(f"{field} has invalid value {data.get(field)!r}")
            elif not exact:
                warnings.append(f"{field} value {data.get(field)!r} is not normalized")

        list_fields: dict[str, type[Enum]] = {"elements": Element, "attack_types": AttackType}
        for field, enum_type in list_fields.items():
            values = data.get(field, [])
            if not isinstance(values, list):
                errors.append(f"{field} is not a list")
                continue
            for value in values:
                matches, exact = _enum_match(value, enum_type)
                if not matches:
                    errors.append(f"{field} has invalid value {value!r}")
                elif not exact:
                    warnings.append(f"{field} value {value!r} is not normalized")

        if not data.get("elements"):
            errors.append("elements is empty")

        assist_type = data.get("assist_type")
        if assist_type is not None:
            matches, exact = _enum_match(assist_type, AssistType)
            if not matches:
                errors.append(f"assist_type has invalid value {assist_type!r}")
            elif not exact:
                warnings.append(f"assist_type value {assist_type!r} is not normalized")

    @staticmethod
    def _check_attributes(data: Mapping[str, Any], errors: list[str], warnings: list[str]) -> None:
        attributes = data.get("attributes")
        if not isinstance(attributes, Mapping):
            errors.append("attributes is missing")
            return

        for field in CURVE_FIELDS:
            curve = attributes.get(field)
            if not isinstance(curve, list):
                errors.append(f"attributes.{field} is not a list")
                continue
            if len(curve) != CURVE_LENGTH:
                errors.append(f"attributes.{field} has {len(curve)} values, expected {CURVE_LENGTH}")
            if not all(_is_finite_number(value) for value in curve):
                errors.append(f"attributes.{field} contains a non-finite value")
            elif curve and all(value == 0 for value in curve):
                warnings.append(f"attributes.{field} is all zero")

        for field in SCALAR_FIELDS:
            if not _is_finite_number(attributes.get(field)):
                errors.append(f"attributes.{field} is not a finite number")

    @staticmethod
    def _check_factions(data: Mapping[str, Any], errors: list[str]) -> None:
        factions = data.get("factions", [])
        if not isinstance(factions, list):
            errors.append("factions is not a list")
            return
        for faction_id in factions:
            if isinstance(faction_id, bool) or not isinstance(faction_id, int) or faction_id < 0:
                errors.append(f"faction id {faction_id!r} is not a non-negative integer")
        if len(set(map(repr, factions))) != len(factions):
            errors.append("faction ids are not unique")

    @staticmethod
    def _check_release_version(data: Mapping[str, Any], errors: list[str]) -> None:
        version = data.get("release_version", 0.0)
        if not _is_finite_number(version) or version < 0:
            errors.append(f"release_version {version!r} is not a non-negative number")


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)
