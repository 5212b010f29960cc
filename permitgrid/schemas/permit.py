"""Canonical permit schema shared by every connector."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from permitgrid.core.errors import RecordValidationError

UNKNOWN_ADDRESS = "Unknown Address"
UNKNOWN_STATUS = "Unknown"

REQUIRED_FIELDS = ("id", "address", "city", "type", "status")

# Epoch values above this are milliseconds (ArcGIS), below are seconds
_EPOCH_MS_THRESHOLD = 10_000_000_000


class FieldIssue(BaseModel):
    """One reason a raw record was rejected or altered."""

    model_config = ConfigDict(frozen=True)

    record_id: Optional[str] = None
    field: str
    message: str


class PermitRecord(BaseModel):
    """Unified permit shape. Required fields are never empty."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    type: str = Field(min_length=1)
    status: str = Field(min_length=1)
    submitted_date: Optional[date] = None
    issued_date: Optional[date] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    source: str = Field(min_length=1)
    source_updated_at: datetime

    @field_validator("id", "address", "city", "type", "status", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("submitted_date", "issued_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Optional[date]:
        return to_date(value)

    @field_validator("lat", mode="before")
    @classmethod
    def _coerce_lat(cls, value: Any) -> Optional[float]:
        return to_coordinate(value, limit=90.0)

    @field_validator("lng", mode="before")
    @classmethod
    def _coerce_lng(cls, value: Any) -> Optional[float]:
        return to_coordinate(value, limit=180.0)

    @field_validator("source_updated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        parsed = to_datetime(value)
        return parsed if parsed is not None else value

    def sort_key(self) -> tuple:
        return (self.city.lower(), self.id)


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings, datetimes and epoch numbers into an aware UTC datetime."""
    if value is None or value == "":
        return None
    try:
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(value, str):
            text = value.strip().replace("Z", "+00:00")
            if len(text) == 8 and text.isdigit():  # compact YYYYMMDD
                return datetime.strptime(text, "%Y%m%d").replace(tzinfo=timezone.utc)
            if text.lstrip("-").isdigit():
                return to_datetime(int(text))
            parsed = datetime.fromisoformat(text)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None
    return None


def to_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = to_datetime(value)
    return parsed.date() if parsed else None


def to_coordinate(value: Any, *, limit: float) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or abs(number) > limit:  # NaN or out of range
        return None
    return number


def _issues_from(exc: ValidationError, record_id: Optional[str]) -> List[FieldIssue]:
    issues: List[FieldIssue] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "record"
        issues.append(FieldIssue(record_id=record_id, field=loc, message=err.get("msg", "invalid")))
    return issues


def parse_record(raw: Dict[str, Any]) -> PermitRecord:
    """Build a PermitRecord or raise RecordValidationError."""
    record_id = raw.get("id") if isinstance(raw, dict) else None
    record_id = str(record_id) if record_id not in (None, "") else None
    if not isinstance(raw, dict):
        issue = FieldIssue(field="record", message=f"expected an object, got {type(raw).__name__}")
        raise RecordValidationError("record is not an object", [issue])
    try:
        return PermitRecord.model_validate(raw)
    except ValidationError as exc:
        issues = _issues_from(exc, record_id)
        fields = ", ".join(issue.field for issue in issues)
        raise RecordValidationError(f"invalid permit record {record_id or '?'}: {fields}", issues) from exc


def validate_record(raw: Dict[str, Any]) -> Union[PermitRecord, List[FieldIssue]]:
    """Accept a draft record or return the reasons it was rejected."""
    try:
        return parse_record(raw)
    except RecordValidationError as exc:
        return list(exc.issues)
