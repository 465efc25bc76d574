# schemas.py
from typing import Any, List, Literal, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Theme(BaseSchema):
    id: UUID
    title: str
    summary: str
    quotes: List[str] = Field(default_factory=list)
    prominence_score: int = Field(ge=1, le=100)
    last_updated: datetime
    created_at: datetime


class CandidateTheme(BaseSchema):
    title: str
    summary: str = ""
    quotes: List[str] = Field(default_factory=list)
    prominence_score: int = Field(ge=1, le=100)


class ReconciliationResult(BaseSchema):
    updated: List[Theme] = Field(default_factory=list)
    created: List[Theme] = Field(default_factory=list)
    skipped: List[CandidateTheme] = Field(default_factory=list)
    # Prior state of themes whose identity was recycled for a created theme
    evicted: List[Theme] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.updated or self.created or self.skipped)


class ThemeExtractionResponse(BaseModel):
    """Top-level shape of the extraction payload; records are checked one by one."""

    themes: List[Any]


class ReplacedTheme(BaseModel):
    previous_title: str
    title: str
    previous_score: int
    prominence_score: int


class InsightRunReport(BaseModel):
    run_id: Optional[UUID] = None
    status: Literal["completed", "partial", "failed"]
    updated_count: int = 0
    created_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    updated: List[str] = Field(default_factory=list)
    created: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    replaced: List[ReplacedTheme] = Field(default_factory=list)


class InsightRunBase(BaseSchema):
    id: UUID
    user_id: UUID
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: str
    updated_count: int
    created_count: int
    skipped_count: int
    failed_count: int
    error: Optional[str] = None


class InsightStatus(BaseModel):
    generated_this_week: bool
    can_generate: bool
    last_run_at: Optional[datetime] = None
    next_eligible_at: datetime
    entry_count: int
    min_entries: int
