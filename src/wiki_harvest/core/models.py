# ABOUTME: Domain models for the harvest pipeline - entries, agent records and batch results
# ABOUTME: Pydantic models with closed enums; records and results are immutable once built

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wiki_harvest.core.errors import ErrorKind

# Ascension checkpoints indexing every per-level curve. The wiki keys level 0 as "1".
ASCENSION_LEVELS: tuple[int, ...] = (0, 10, 20, 30, 40, 50, 60)
ASCENSION_LEVEL_KEYS: tuple[str, ...] = ("1", "10", "20", "30", "40", "50", "60")
CURVE_LENGTH = len(ASCENSION_LEVELS)

RawPayload = dict[str, Any]


class Locale(str, Enum):
    """Content locales served by the wiki API."""

    JA_JP = "ja-jp"
    EN_US = "en-us"


class Specialty(str, Enum):
    ATTACK = "attack"
    STUN = "stun"
    ANOMALY = "anomaly"
    SUPPORT = "support"
    DEFENSE = "defense"
    RUPTURE = "rupture"


class Element(str, Enum):
    ETHER = "ether"
    FIRE = "fire"
    ICE = "ice"
    PHYSICAL = "physical"
    ELECTRIC = "electric"
    FROST = "frost"
    AURIC_INK = "auricInk"


class AttackType(str, Enum):
    SLASH = "slash"
    PIERCE = "pierce"
    STRIKE = "strike"


class Rarity(str, Enum):
    S = "S"
    A = "A"


class AssistType(str, Enum):
    """Assist follow-up an agent performs when switched in."""

    DEFENSIVE = "defensive"
    EVASIVE = "evasive"


DEFAULT_SPECIALTY = Specialty.ATTACK
DEFAULT_ELEMENT = Element.PHYSICAL
DEFAULT_RARITY = Rarity.A


class ProcessingStage(str, Enum):
    """Where in the per-entry flow a failure happened."""

    ENTRY = "entry"
    FETCH = "fetch"
    MAPPING = "mapping"
    VALIDATION = "validation"
    DEGRADATION = "degradation"
    CANCELLED = "cancelled"


class Entry(BaseModel):
    """One wiki page to harvest, as listed by the entry-list loader."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable agent id, e.g. 'lycaon'")
    source_ref: int | str = Field(description="Wiki entry_page_id used to fetch the page")
    display_name: str = Field(default="", description="Name known before fetching")


class LocalizedName(BaseModel):
    model_config = ConfigDict(frozen=True)

    ja: str
    en: str


def _zero_curve() -> list[float]:
    return [0.0] * CURVE_LENGTH


class Attributes(BaseModel):
    """Combat attributes; hp/atk/defense are curves over ASCENSION_LEVELS."""

    model_config = ConfigDict(frozen=True)

    hp: list[float] = Field(default_factory=_zero_curve)
    atk: list[float] = Field(default_factory=_zero_curve)
    defense: list[float] = Field(default_factory=_zero_curve)
    impact: float = 0.0
    crit_rate: float = 0.0
    crit_dmg: float = 0.0
    anomaly_mastery: float = 0.0
    anomaly_proficiency: float = 0.0
    pen_ratio: float = 0.0
    energy: float = 0.0

    @property
    def curves(self) -> dict[str, list[float]]:
        return {"hp": self.hp, "atk": self.atk, "defense": self.defense}

    @property
    def scalars(self) -> dict[str, float]:
        return {
            "impact": self.impact,
            "crit_rate": self.crit_rate,
            "crit_dmg": self.crit_dmg,
            "anomaly_mastery": self.anomaly_mastery,
            "anomaly_proficiency": self.anomaly_proficiency,
            "pen_ratio": self.pen_ratio,
            "energy": self.energy,
        }


class AgentRecord(BaseModel):
    """A mapped agent, ready for output."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Agent id, same as the entry id")
    page_id: int | str | None = Field(default=None, description="Wiki entry_page_id the record came from")
    name: LocalizedName
    specialty: Specialty = DEFAULT_SPECIALTY
    elements: list[Element] = Field(default_factory=lambda: [DEFAULT_ELEMENT])
    attack_types: list[AttackType] = Field(default_factory=list)
    assist_type: AssistType | None = Field(default=None, description="Defensive or evasive, when the page names one")
    rarity: Rarity = DEFAULT_RARITY
    factions: list[int] = Field(default_factory=list, description="De-duplicated faction ids")
    attributes: Attributes = Field(default_factory=Attributes)
    release_version: float = Field(default=0.0, description="Game version the agent was released in")
    degraded: bool = Field(default=False, description="Built from entry metadata only")


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class FailedEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry_id: str
    error: str
    stage: ProcessingStage
    error_kind: ErrorKind | None = None
    attempts: int = 0


class BatchStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    successful: int
    failed: int
    retries: int = 0
    degraded: int = 0
    success_rate: float
    processing_time_ms: float
    started_at: datetime
    finished_at: datetime


class BatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    successful: list[AgentRecord]
    failed: list[FailedEntry]
    statistics: BatchStatistics


class PipelineOptions(BaseModel):
    """Options for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(default=5, ge=1)
    inter_batch_delay_ms: float = Field(default=500.0, ge=0.0)
    max_retries_per_item: int = Field(default=3, ge=0)
    min_success_rate: float = Field(default=0.8, ge=0.0, le=1.0)
    concurrent: bool = Field(default=False, description="Run entries of one batch concurrently")
    degrade_fetch_failures: bool = Field(
        default=False, description="Also degrade entries whose every attempt failed to fetch"
    )


class ProgressInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: int
    total: int
    entry_id: str
    stage: str
    elapsed_ms: float
