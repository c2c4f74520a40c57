"""
Real-time event payloads using Pydantic v2
Validates and normalizes raw transport messages before they reach the read model
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .prize_pool import coerce_money
from .timing import parse_instant

logger = logging.getLogger(__name__)

# Keys that describe the event itself rather than contestant fields
_ENVELOPE_KEYS = {"type", "id", "competition_id", "updated_at"}


def _require_id(value: Any, name: str) -> str:
    if value is None or isinstance(value, bool):
        raise ValueError(f"{name} is required")
    text = str(value).strip()
    if not text:
        raise ValueError(f"{name} cannot be empty")
    return text


class VoteInserted(BaseModel):
    """A paid vote row was inserted for a contestant."""

    type: Literal["vote_inserted"] = "vote_inserted"
    vote_id: Optional[str] = Field(None, description="Vote row id, used for de-duplication")
    contestant_id: str
    competition_id: Optional[str] = None
    amount_paid: Decimal = Field(Decimal("0"), description="Never negative; junk is valued at zero")
    vote_count: int = Field(1, ge=1, description="Votes bought by this transaction")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def map_row_id(cls, data: Any) -> Any:
        # Vote rows carry their own id under 'id'.
        if isinstance(data, dict) and "vote_id" not in data and "id" in data:
            data = dict(data)
            data["vote_id"] = data.pop("id")
        return data

    @field_validator("vote_id", "competition_id", mode="before")
    @classmethod
    def stringify_optional_id(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, bool):
            return None
        text = str(v).strip()
        return text or None

    @field_validator("contestant_id", mode="before")
    @classmethod
    def validate_contestant_id(cls, v: Any) -> str:
        return _require_id(v, "contestant_id")

    @field_validator("amount_paid", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        amount = coerce_money(v)
        if amount is None or amount < 0:
            return Decimal("0")
        return amount

    @field_validator("vote_count", mode="before")
    @classmethod
    def default_vote_count(cls, v: Any) -> int:
        if isinstance(v, bool) or v is None:
            return 1
        try:
            count = int(v)
        except (TypeError, ValueError, OverflowError):
            return 1
        return count if count >= 1 else 1

    def as_vote_row(self) -> Dict[str, Any]:
        return {
            "id": self.vote_id,
            "contestant_id": self.contestant_id,
            "competition_id": self.competition_id,
            "amount_paid": self.amount_paid,
            "vote_count": self.vote_count,
        }


class _ContestantEvent(BaseModel):
    id: str
    competition_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    fields: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def split_fields(cls, data: Any) -> Any:
        """Flat row payload → envelope + changed fields."""
        if not isinstance(data, dict) or "fields" in data:
            return data
        envelope = {key: data[key] for key in _ENVELOPE_KEYS if key in data}
        envelope["fields"] = {k: v for k, v in data.items() if k not in _ENVELOPE_KEYS}
        return envelope

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> str:
        return _require_id(v, "id")

    @field_validator("competition_id", mode="before")
    @classmethod
    def stringify_competition_id(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, bool):
            return None
        return str(v).strip() or None

    @field_validator("updated_at", mode="before")
    @classmethod
    def parse_updated_at(cls, v: Any) -> Optional[datetime]:
        # A malformed timestamp downgrades to "unversioned" instead of rejecting the event.
        return parse_instant(v)


class ContestantUpdated(_ContestantEvent):
    """Changed columns of an existing contestant row."""

    type: Literal["contestant_updated"] = "contestant_updated"


class ContestantInserted(_ContestantEvent):
    """A contestant row was created (e.g. a nominee accepted)."""

    type: Literal["contestant_inserted"] = "contestant_inserted"


class ContestantDeleted(_ContestantEvent):
    type: Literal["contestant_deleted"] = "contestant_deleted"


RealtimeEvent = Union[VoteInserted, ContestantUpdated, ContestantInserted, ContestantDeleted]

_EVENT_TYPES = {
    "vote_inserted": VoteInserted,
    "contestant_updated": ContestantUpdated,
    "contestant_inserted": ContestantInserted,
    "contestant_deleted": ContestantDeleted,
}


def parse_event(raw: Any) -> RealtimeEvent:
    """
    Validate and normalize a raw transport payload

    Returns:
        RealtimeEvent: one of the typed event models

    Raises:
        ValueError: If the payload is not a known, well-formed event
    """
    if isinstance(raw, tuple(_EVENT_TYPES.values())):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid event: expected an object, got {type(raw).__name__}")
    event_type = raw.get("type")
    model = _EVENT_TYPES.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        raise ValueError(f"Invalid event: unknown type {raw.get('type')!r}")
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Event validation failed: {e}")
        raise ValueError(f"Invalid event: {str(e)}")


__all__ = [
    "VoteInserted",
    "ContestantUpdated",
    "ContestantInserted",
    "ContestantDeleted",
    "RealtimeEvent",
    "parse_event",
]
