from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from wingman.domain.canonical import to_utc
from wingman.domain.models import (
    MAX_TAGS,
    MAX_TYPES,
    ActivityDraft,
    Budget,
    Duration,
    GeoPoint,
    LocationType,
    SharedExpense,
    SocialVibe,
)


class LocationIn(BaseModel):
    # strict: "12.5" as a string is rejected instead of coerced
    lat: float = Field(..., ge=-90, le=90, strict=True)
    lng: float = Field(..., ge=-180, le=180, strict=True)


class ExpenseIn(BaseModel):
    label: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)

    @field_validator("label")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("label must not be blank")
        return value


class ActivityCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., validation_alias=AliasChoices("name", "title"))
    location: LocationIn
    description: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    budget: Optional[Budget] = None
    duration: Optional[Duration] = None
    location_type: Optional[LocationType] = Field(
        None, validation_alias=AliasChoices("locationType", "location_type")
    )
    social_vibe: Optional[SocialVibe] = Field(
        None, validation_alias=AliasChoices("socialVibe", "social_vibe")
    )
    date_time: Optional[datetime] = Field(None, validation_alias=AliasChoices("dateTime", "date_time"))
    shared_expenses: List[ExpenseIn] = Field(
        default_factory=list, validation_alias=AliasChoices("sharedExpenses", "shared_expenses")
    )

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value

    @field_validator("types")
    @classmethod
    def _cap_types(cls, value: List[str]) -> List[str]:
        return value[:MAX_TYPES]

    @field_validator("tags")
    @classmethod
    def _cap_tags(cls, value: List[str]) -> List[str]:
        return value[:MAX_TAGS]

    def to_draft(self) -> ActivityDraft:
        return ActivityDraft(
            name=self.name,
            location=GeoPoint(self.location.lat, self.location.lng),
            description=(self.description or "").strip() or None,
            types=self.types,
            tags=self.tags,
            budget=self.budget,
            duration=self.duration,
            location_type=self.location_type,
            social_vibe=self.social_vibe,
            date_time=to_utc(self.date_time),
            shared_expenses=[SharedExpense(item.label, item.amount) for item in self.shared_expenses],
        )
