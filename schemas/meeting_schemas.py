from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ExtractTranscriptRequest(BaseModel):
    transcript: str

    @field_validator('transcript')
    @classmethod
    def validate_transcript(cls, value):
        value = value.strip()
        if len(value) < 10:
            raise ValueError('Transcript must be at least 10 characters')
        if len(value) > 50_000:
            raise ValueError('Transcript must be at most 50,000 characters')
        return value


class ExtractedActionItem(BaseModel):
    """
    One action item proposed by the extraction service, in camelCase on the wire.

    The model's output is loosely typed: an unknown priority falls back to
    MEDIUM and an unreadable due date is dropped rather than failing the item.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    suggested_due_date: datetime | None = None

    @field_validator('description', mode='before')
    @classmethod
    def default_description(cls, value):
        return value or ""

    @field_validator('priority', mode='wrap')
    @classmethod
    def default_priority(cls, value, handler):
        if isinstance(value, str):
            value = value.strip().upper()
        try:
            return handler(value)
        except ValidationError:
            return Priority.MEDIUM

    @field_validator('suggested_due_date', mode='wrap')
    @classmethod
    def drop_bad_due_date(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return None


class TranscriptAnalysis(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    summary: str
    action_items: list[ExtractedActionItem] = []

    @field_validator('action_items', mode='before')
    @classmethod
    def skip_unusable_items(cls, value):
        # Items without a usable title are dropped, the rest are kept
        if not isinstance(value, list):
            return value
        items = []
        for item in value:
            try:
                items.append(ExtractedActionItem.model_validate(item))
            except ValidationError:
                continue
        return items


class ExtractionResponse(TranscriptAnalysis):
    transcript_id: str
