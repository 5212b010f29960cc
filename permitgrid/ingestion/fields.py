"""Ordered candidate field names per canonical field.

Portals rename columns between redeployments, so each canonical field is
resolved by trying a list of raw names and taking the first non-empty one.
A candidate can also be a tuple of raw names whose values are joined with a
space (house number + street name).
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from permitgrid.schemas.permit import UNKNOWN_ADDRESS, UNKNOWN_STATUS, to_datetime

Candidate = Union[str, Tuple[str, ...]]

DEFAULT_CANDIDATES: Dict[str, List[Candidate]] = {
    "id": [
        "PERMIT_NO", "permit_no", "PermitNumber", "permitnumber", "PERMIT_ID", "permit_id",
        "permit_number", "application_number", "id", "recordid", "OBJECTID",
    ],
    "address": [
        "ADDRESS", "address", "SITE_ADDRESS", "site_address", "CIVIC_ADDRESS", "civic_address",
        "permit_address", ("House", "Street"),
    ],
    "type": [
        "PERMIT_TYPE", "permit_type", "typeofwork", "FolderDesc", "FolderType",
        "application_type", "type",
    ],
    "status": [
        "STATUS", "status", "PERMIT_STATUS", "permit_status", "StatusDescription", "application_status",
    ],
    "submitted_date": [
        "APPLIED_DATE", "applied_date", "application_date", "DATE_SUBMITTED", "submitted_date",
        "submission_date", "date_submitted", "InDate",
    ],
    "issued_date": [
        "ISSUED_DATE", "issued_date", "issue_date", "issuedate", "DATE_ISSUED", "date_issued",
        "IssueDate", "approval_date",
    ],
    "lat": ["LAT", "latitude", "lat", "__lat"],
    "lng": ["LNG", "LONG", "longitude", "lng", "__lng"],
    "source_updated_at": ["LAST_UPDATED", "last_updated", "last_modified", "lastchangedon", "record_timestamp"],
}

SENTINELS: Dict[str, str] = {
    "address": UNKNOWN_ADDRESS,
    "status": UNKNOWN_STATUS,
}


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _read(raw: Mapping[str, Any], candidate: Candidate) -> Any:
    if isinstance(candidate, str):
        return raw.get(candidate)
    parts = [raw.get(name) for name in candidate]
    if not all(_is_present(part) for part in parts):
        return None
    return " ".join(str(part).strip() for part in parts)


def first_present(raw: Mapping[str, Any], candidates: Iterable[Candidate]) -> Any:
    """Return the value of the first candidate present in ``raw``, else None."""
    for candidate in candidates:
        value = _read(raw, candidate)
        if _is_present(value):
            return value
    return None


def content_id(prefix: str, raw: Mapping[str, Any]) -> str:
    """Deterministic id for records that carry none."""
    digest = hashlib.sha1(json.dumps(raw, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:12]}"


class FieldMapping:
    """Resolves canonical fields from a raw record.

    ``overrides`` are tried before the defaults; ``constants`` fill a field
    only when no candidate matched.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, Sequence[Candidate]]] = None,
        constants: Optional[Mapping[str, Any]] = None,
        defaults: Mapping[str, Sequence[Candidate]] = DEFAULT_CANDIDATES,
    ):
        overrides = overrides or {}
        self.constants = dict(constants or {})
        self.candidates: Dict[str, List[Candidate]] = {}
        for field in set(defaults) | set(overrides):
            merged: List[Candidate] = []
            for candidate in list(overrides.get(field, [])) + list(defaults.get(field, [])):
                candidate = tuple(candidate) if isinstance(candidate, list) else candidate
                if candidate not in merged:
                    merged.append(candidate)
            self.candidates[field] = merged

    def resolve(self, field: str, raw: Mapping[str, Any]) -> Any:
        value = first_present(raw, self.candidates.get(field, []))
        if value is None:
            value = self.constants.get(field)
        if value is None:
            value = SENTINELS.get(field)
        return value

    def draft(
        self,
        raw: Mapping[str, Any],
        *,
        city: str,
        id_prefix: str,
        source: str,
        fetched_at: Any,
    ) -> Dict[str, Any]:
        """Build a draft canonical record; validation happens afterwards."""
        record_id = self.resolve("id", raw)
        return {
            "id": record_id if record_id is not None else content_id(id_prefix, raw),
            "address": self.resolve("address", raw),
            "city": city,
            "type": self.resolve("type", raw),
            "status": self.resolve("status", raw),
            "submitted_date": self.resolve("submitted_date", raw),
            "issued_date": self.resolve("issued_date", raw),
            "lat": self.resolve("lat", raw),
            "lng": self.resolve("lng", raw),
            "source": source,
            "source_updated_at": to_datetime(self.resolve("source_updated_at", raw)) or fetched_at,
        }
