"""Pydantic schemas shared across the API."""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import UnknownResourceError


class RecordKind(str, Enum):
    """Multi-entry tables: add and delete only."""

    FEEDING = "feeding"
    DIAPER = "diaper"
    SLEEP = "sleep"
    EDUCATION = "education"


class DailyKind(str, Enum):
    """Tables holding at most one row per (family, date)."""

    SUPPLEMENT = "supplement"
    CARE = "care"
    DAILY_NOTE = "dailyNote"


class DiaperType(str, Enum):
    PEE = "pee"
    POOP = "poop"
    BOTH = "both"


class SleepDirection(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class EducationCategory(str, Enum):
    VISUAL = "visual"
    AUDITORY = "auditory"
    GROSS_MOTOR = "gross-motor"
    FINE_MOTOR = "fine-motor"


class SupplementItem(str, Enum):
    AD = "AD"
    D3 = "D3"
    IRON = "铁"
    WATER = "水"
    PROBIOTIC = "益生菌"
    LACTASE = "乳糖酶"
    DHA = "DHA"


class CareItem(str, Enum):
    FACE_WASH = "洗脸"
    NASAL_CLEANING = "鼻腔清洁"
    HAND_WASH = "洗手"
    MOISTURIZING = "保湿"
    BATH = "洗澡"
    NAIL_TRIM = "剪指甲"
    ORAL_CLEANING = "口腔清洁"


# Older exports stored the labels shown on the page.
LEGACY_DIRECTIONS = {"左": "left", "中": "center", "右": "right"}
LEGACY_CATEGORIES = {
    "视觉训练": "visual",
    "听觉训练": "auditory",
    "大动作训练": "gross-motor",
    "精细动作": "fine-motor",
}


def _zero_if_missing(value: Any) -> Any:
    if value is None or value == "":
        return 0
    return value


def _blank_if_missing(value: Any) -> Any:
    return "" if value is None else value


class RecordBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    date: str = Field(..., min_length=1, description="YYYY-MM-DD")
    created_at: Optional[int] = Field(
        default=None,
        alias="createdAt",
        description="Capture time in epoch milliseconds; assigned on write when omitted.",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FeedingRecord(RecordBase):
    time: str = Field(..., min_length=1, description="HH:MM")
    breast_left: int = Field(default=0, alias="breastLeft", description="Minutes on the left side")
    breast_right: int = Field(default=0, alias="breastRight", description="Minutes on the right side")
    bottle_breast_milk: int = Field(default=0, alias="bottleBreastMilk", description="Expressed milk, ml")
    bottle_formula: int = Field(default=0, alias="bottleFormula", description="Formula, ml")

    @field_validator("breast_left", "breast_right", "bottle_breast_milk", "bottle_formula", mode="before")
    @classmethod
    def _zero_amounts(cls, value: Any) -> Any:
        return _zero_if_missing(value)


class DiaperRecord(RecordBase):
    time: str = Field(..., min_length=1)
    type: DiaperType
    color: str = ""
    amount: str = ""
    note: str = ""
    image: str = Field(default="", description="Optional base64 data URL")

    @field_validator("color", "amount", "note", "image", mode="before")
    @classmethod
    def _blank_text(cls, value: Any) -> Any:
        return _blank_if_missing(value)


class SleepRecord(RecordBase):
    start_time: str = Field(..., min_length=1, alias="startTime")
    end_time: str = Field(default="", alias="endTime", description="Empty while the sleep is in progress")
    direction: SleepDirection = SleepDirection.CENTER

    @field_validator("end_time", mode="before")
    @classmethod
    def _blank_end(cls, value: Any) -> Any:
        return _blank_if_missing(value)

    @field_validator("direction", mode="before")
    @classmethod
    def _legacy_direction(cls, value: Any) -> Any:
        if value is None or value == "":
            return SleepDirection.CENTER
        return LEGACY_DIRECTIONS.get(value, value)


class EducationRecord(RecordBase):
    category: EducationCategory
    duration: int = Field(default=0, description="Minutes")
    content: str = ""

    @field_validator("duration", mode="before")
    @classmethod
    def _zero_duration(cls, value: Any) -> Any:
        return _zero_if_missing(value)

    @field_validator("content", mode="before")
    @classmethod
    def _blank_content(cls, value: Any) -> Any:
        return _blank_if_missing(value)

    @field_validator("category", mode="before")
    @classmethod
    def _legacy_category(cls, value: Any) -> Any:
        return LEGACY_CATEGORIES.get(value, value)


class ChecklistRecord(RecordBase):
    item_enum: ClassVar[Type[Enum]]

    items: Dict[str, bool] = Field(default_factory=dict)

    @field_validator("items", mode="before")
    @classmethod
    def _decode_items(cls, value: Any) -> Any:
        # Some exports carry the stored JSON text instead of an object.
        if isinstance(value, str):
            return json.loads(value)
        if value is None:
            return {}
        return value

    @classmethod
    def default_items(cls) -> List[str]:
        return [member.value for member in cls.item_enum]

    def unknown_items(self) -> List[str]:
        known = set(self.default_items())
        return [key for key in self.items if key not in known]

    def completion(self) -> tuple[int, int]:
        """Return (done, total) for the checklist."""
        return sum(1 for done in self.items.values() if done), len(self.items)


class SupplementRecord(ChecklistRecord):
    item_enum: ClassVar[Type[Enum]] = SupplementItem


class CareRecord(ChecklistRecord):
    item_enum: ClassVar[Type[Enum]] = CareItem


class DailyNote(RecordBase):
    temperature: float = Field(default=0, description="Body temperature, degrees Celsius")
    vaccine: str = ""
    note: str = ""

    @field_validator("temperature", mode="before")
    @classmethod
    def _zero_temperature(cls, value: Any) -> Any:
        return _zero_if_missing(value)

    @field_validator("vaccine", "note", mode="before")
    @classmethod
    def _blank_text(cls, value: Any) -> Any:
        return _blank_if_missing(value)


ActivityRecord = Union[FeedingRecord, DiaperRecord, SleepRecord, EducationRecord]
DailyRecord = Union[SupplementRecord, CareRecord, DailyNote]

RECORD_MODELS: Dict[RecordKind, Type[RecordBase]] = {
    RecordKind.FEEDING: FeedingRecord,
    RecordKind.DIAPER: DiaperRecord,
    RecordKind.SLEEP: SleepRecord,
    RecordKind.EDUCATION: EducationRecord,
}

DAILY_MODELS: Dict[DailyKind, Type[RecordBase]] = {
    DailyKind.SUPPLEMENT: SupplementRecord,
    DailyKind.CARE: CareRecord,
    DailyKind.DAILY_NOTE: DailyNote,
}


def resolve_kind(name: str) -> Union[RecordKind, DailyKind]:
    """Map a table name from the wire onto its enum, or raise UnknownResourceError."""
    if isinstance(name, (RecordKind, DailyKind)):
        return name
    for enum in (RecordKind, DailyKind):
        try:
            return enum(name)
        except ValueError:
            continue
    raise UnknownResourceError(str(name))


def resolve_record_kind(name: str) -> RecordKind:
    kind = resolve_kind(name)
    if not isinstance(kind, RecordKind):
        raise UnknownResourceError(str(name))
    return kind


def resolve_daily_kind(name: str) -> DailyKind:
    kind = resolve_kind(name)
    if not isinstance(kind, DailyKind):
        raise UnknownResourceError(str(name))
    return kind


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    family_code: Optional[str] = Field(default=None, alias="familyCode")


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    family_code: str = Field(..., alias="familyCode")


class SettingEntry(BaseModel):
    key: str = Field(..., min_length=1)
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float, bool)):
            return str(value)
        return value


class DayStats(BaseModel):
    """Derived totals for one (family, date)."""

    model_config = ConfigDict(populate_by_name=True)

    feeding_count: int = Field(default=0, alias="feedingCount")
    total_milk: int = Field(default=0, alias="totalMilk", description="Bottle milk + formula, ml")
    total_breast_min: int = Field(default=0, alias="totalBreastMin")
    diaper_count: int = Field(default=0, alias="diaperCount")
    poop_count: int = Field(default=0, alias="poopCount")
    sleep_hours: float = Field(default=0.0, alias="sleepHours")
    supplements_done: int = Field(default=0, alias="supplementsDone")
    supplements_total: int = Field(default=0, alias="supplementsTotal")
    care_done: int = Field(default=0, alias="careDone")
    care_total: int = Field(default=0, alias="careTotal")


class Snapshot(BaseModel):
    """Full per-family backup document."""

    model_config = ConfigDict(populate_by_name=True)

    feeding: List[FeedingRecord] = Field(default_factory=list)
    diaper: List[DiaperRecord] = Field(default_factory=list)
    sleep: List[SleepRecord] = Field(default_factory=list)
    education: List[EducationRecord] = Field(default_factory=list)
    supplement: List[SupplementRecord] = Field(default_factory=list)
    care: List[CareRecord] = Field(default_factory=list)
    daily_note: List[DailyNote] = Field(default_factory=list, alias="dailyNote")
    settings: List[SettingEntry] = Field(default_factory=list)
    export_date: Optional[str] = Field(default=None, alias="exportDate")

    @field_validator(
        "feeding", "diaper", "sleep", "education", "supplement", "care", "daily_note", "settings",
        mode="before",
    )
    @classmethod
    def _missing_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def records(self, kind: Union[RecordKind, DailyKind]) -> List[RecordBase]:
        if kind is DailyKind.DAILY_NOTE:
            return self.daily_note
        return getattr(self, kind.value)

    def row_count(self) -> int:
        total = len(self.settings)
        for kind in list(RecordKind) + list(DailyKind):
            total += len(self.records(kind))
        return total

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
