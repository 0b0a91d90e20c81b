"""Pydantic schemas for Call-for-Service requests and responses."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from cfs_portal.db.enums import (
    DEFAULT_ACCESS_LEVEL,
    DEFAULT_CFS_ORIGIN,
    DEFAULT_CFS_SOURCE,
    DEFAULT_DISMISS_REPORT_STATUS,
    DEFAULT_NOTIFY_CHANNEL,
    DEFAULT_REPORT_METHOD,
    DEFAULT_REPORT_PRIORITY,
    DEFAULT_VERIFICATION_METHOD,
    DEFAULT_VERIFICATION_STATUS,
    CfsAccessLevel,
    CfsOrigin,
    CfsSource,
    CfsStatus,
    IncidentPriority,
    IncidentType,
    NotifyChannel,
    PublicCategory,
    PublicStatus,
    ReportMethod,
    ReportPriority,
    ReportStatus,
    VerificationMethod,
    VerificationStatus,
)
from cfs_portal.utils.normalization import (
    normalize_optional_text,
    parse_optional_datetime,
    parse_urgency_indicators,
)


MIN_NARRATIVE_LENGTH = 8
MIN_NOTE_LENGTH = 4


# =============================================================================
# Shared coercion
# =============================================================================

def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        return normalize_optional_text(value)
    return value


def _apply_blank_defaults(data: Any, defaults: dict[str, Any]) -> Any:
    """Replace missing/blank enum inputs with their defaults (form selects send "")."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key, default in defaults.items():
        value = data.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            data[key] = default
    return data


def _coerce_urgency(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return parse_urgency_indicators(value)
    if isinstance(value, (list, tuple)):
        return [str(entry).strip() for entry in value if str(entry).strip()]
    return value


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, str):
        return parse_optional_datetime(value)
    return value


def flatten_validation_errors(errors: list[dict[str, Any]]) -> dict[str, str]:
    """
    Turn pydantic error dicts into a field -> message map.

    The first error per field wins. The ``body`` prefix FastAPI adds to
    request-body locations is dropped.
    """
    field_errors: dict[str, str] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "__root__"
        field_errors.setdefault(field, error.get("msg", "Invalid value."))
    return field_errors


# =============================================================================
# Intake
# =============================================================================

class CfsCreate(BaseModel):
    """Intake payload for a new call."""

    # Classification
    origin: CfsOrigin = DEFAULT_CFS_ORIGIN
    source: CfsSource = DEFAULT_CFS_SOURCE
    report_method: ReportMethod = DEFAULT_REPORT_METHOD
    report_priority_assessment: ReportPriority = DEFAULT_REPORT_PRIORITY
    type_hint: IncidentType | None = None
    priority_hint: IncidentPriority | None = None
    urgency_indicators: list[str] = Field(default_factory=list)

    # Timing
    received_at: datetime | None = None
    report_received_at: datetime | None = None

    # Reporter
    anonymous_reporter: bool = False
    anonymous_reporter_details: str | None = Field(None, max_length=2000)
    reporting_person_id: int | None = Field(None, gt=0)
    reporting_organization_id: int | None = Field(None, gt=0)
    referring_organization_id: int | None = Field(None, gt=0)
    referring_agency_name: str | None = Field(None, max_length=255)
    reporter_name: str | None = Field(None, max_length=255)
    reporter_phone: str | None = Field(None, max_length=50)
    reporter_email: str | None = Field(None, max_length=255)
    reporter_address: str | None = Field(None, max_length=500)
    reporter_relationship: str | None = Field(None, max_length=255)

    # Location
    location_text: str | None = Field(None, max_length=500)
    reported_location: str | None = Field(None, max_length=500)
    reported_coordinates: str | None = Field(None, max_length=100)
    location_confidence: str | None = Field(None, max_length=50)

    initial_report_narrative: str

    # Reporter updates
    notify_opt_in: bool = False
    notify_channel: NotifyChannel = DEFAULT_NOTIFY_CHANNEL
    notify_target: str | None = Field(None, max_length=255)

    # Public tracking
    public_tracking_enabled: bool = False
    public_category: PublicCategory | None = None
    public_location_area: str | None = Field(None, max_length=255)
    public_summary: str | None = Field(None, max_length=1000)

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        return _apply_blank_defaults(
            data,
            {
                "origin": DEFAULT_CFS_ORIGIN,
                "source": DEFAULT_CFS_SOURCE,
                "report_method": DEFAULT_REPORT_METHOD,
                "report_priority_assessment": DEFAULT_REPORT_PRIORITY,
                "notify_channel": DEFAULT_NOTIFY_CHANNEL,
            },
        )

    @field_validator(
        "type_hint",
        "priority_hint",
        "public_category",
        "anonymous_reporter_details",
        "referring_agency_name",
        "reporter_name",
        "reporter_phone",
        "reporter_email",
        "reporter_address",
        "reporter_relationship",
        "location_text",
        "reported_location",
        "reported_coordinates",
        "location_confidence",
        "notify_target",
        "public_location_area",
        "public_summary",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("reporting_person_id", "reporting_organization_id", "referring_organization_id", mode="before")
    @classmethod
    def blank_id_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("urgency_indicators", mode="before")
    @classmethod
    def split_urgency(cls, v: Any) -> Any:
        return _coerce_urgency(v) or []

    @field_validator("received_at", "report_received_at", mode="before")
    @classmethod
    def parse_timestamps(cls, v: Any) -> Any:
        return _coerce_datetime(v)

    @field_validator("initial_report_narrative", mode="before")
    @classmethod
    def validate_narrative(cls, v: Any) -> str:
        text = v.strip() if isinstance(v, str) else ""
        if len(text) < MIN_NARRATIVE_LENGTH:
            raise PydanticCustomError(
                "narrative_too_short",
                "Provide a short summary (at least 8 characters).",
            )
        return text


# =============================================================================
# Triage & verification
# =============================================================================

class CfsTriage(BaseModel):
    report_priority_assessment: ReportPriority = DEFAULT_REPORT_PRIORITY
    type_hint: IncidentType | None = None
    priority_hint: IncidentPriority | None = None
    # None leaves the stored indicators unchanged
    urgency_indicators: list[str] | None = None
    phase_notes: str | None = Field(None, max_length=4000)

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        return _apply_blank_defaults(data, {"report_priority_assessment": DEFAULT_REPORT_PRIORITY})

    @field_validator("type_hint", "priority_hint", "phase_notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("urgency_indicators", mode="before")
    @classmethod
    def split_urgency(cls, v: Any) -> Any:
        return _coerce_urgency(v)


class CfsVerify(BaseModel):
    verification_status: VerificationStatus = DEFAULT_VERIFICATION_STATUS
    verification_method: VerificationMethod = DEFAULT_VERIFICATION_METHOD
    notes: str | None = Field(None, max_length=4000)

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        return _apply_blank_defaults(
            data,
            {
                "verification_status": DEFAULT_VERIFICATION_STATUS,
                "verification_method": DEFAULT_VERIFICATION_METHOD,
            },
        )

    @field_validator("notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


# =============================================================================
# Resolution & conversion
# =============================================================================

class CfsDismiss(BaseModel):
    report_status: ReportStatus = DEFAULT_DISMISS_REPORT_STATUS
    notes: str | None = Field(None, max_length=4000)

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        return _apply_blank_defaults(data, {"report_status": DEFAULT_DISMISS_REPORT_STATUS})

    @field_validator("report_status")
    @classmethod
    def require_closing_status(cls, v: ReportStatus) -> ReportStatus:
        if v == ReportStatus.ACTIVE:
            raise PydanticCustomError("report_status_active", "Select a closing status.")
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class CfsDuplicate(BaseModel):
    duplicate_of: int = Field(..., gt=0)
    notes: str | None = Field(None, max_length=4000)

    @field_validator("notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class CfsConvert(BaseModel):
    incident_type: IncidentType | None = None
    description: str | None = Field(None, max_length=4000)
    incident_status: str | None = Field(None, max_length=50)
    dispatch_notes: str | None = Field(None, max_length=4000)

    @field_validator("incident_type", "description", "incident_status", "dispatch_notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class CfsTransfer(BaseModel):
    organization_id: int = Field(..., gt=0)
    reason: str | None = Field(None, max_length=1000)

    @field_validator("reason", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


# =============================================================================
# Sharing & public tracking
# =============================================================================

class OrgAccessGrant(BaseModel):
    organization_id: int = Field(..., gt=0)
    access_level: CfsAccessLevel = DEFAULT_ACCESS_LEVEL
    reason: str | None = Field(None, max_length=1000)

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        return _apply_blank_defaults(data, {"access_level": DEFAULT_ACCESS_LEVEL})

    @field_validator("reason", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class PublicTrackingEnable(BaseModel):
    public_category: PublicCategory | None = None
    public_location_area: str | None = Field(None, max_length=255)
    public_summary: str | None = Field(None, max_length=1000)

    @field_validator("public_category", "public_location_area", "public_summary", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


# =============================================================================
# Notes & status
# =============================================================================

class CfsNoteCreate(BaseModel):
    note: str

    @field_validator("note", mode="before")
    @classmethod
    def validate_note(cls, v: Any) -> str:
        text = v.strip() if isinstance(v, str) else ""
        if len(text) < MIN_NOTE_LENGTH:
            raise PydanticCustomError("note_too_short", "Add a brief note (at least 4 characters).")
        return text


class CfsStatusUpdate(BaseModel):
    status: CfsStatus = CfsStatus.RECEIVED
    notes: str | None = Field(None, max_length=4000)

    @model_validator(mode="before")
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        return _apply_blank_defaults(data, {"status": CfsStatus.RECEIVED})

    @field_validator("notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


# =============================================================================
# Read models
# =============================================================================

class CfsListItem(BaseModel):
    """Queue row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    report_number: str | None
    status: str
    report_status: str
    source: str
    report_priority_assessment: str
    type_hint: str | None
    location_text: str | None
    owning_organization_id: int
    report_received_at: datetime | None
    updated_at: datetime | None


class CfsRead(BaseModel):
    """Full call detail for staff."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    report_number: str | None
    owning_organization_id: int
    created_by_profile_id: UUID | None

    origin: str
    source: str
    report_method: str
    report_priority_assessment: str
    type_hint: str | None
    priority_hint: str | None
    urgency_indicators: list[str] | None

    status: str
    report_status: str
    triaged_at: datetime | None
    closed_at: datetime | None
    resolution_notes: str | None
    duplicate_of_report_id: int | None

    verification_status: str | None
    verification_method: str | None
    verification_notes: str | None
    verified_at: datetime | None

    anonymous_reporter: bool
    anonymous_reporter_details: str | None
    reporting_person_id: int | None
    reporting_organization_id: int | None
    referring_organization_id: int | None
    referring_agency_name: str | None
    reporter_name: str | None
    reporter_phone: str | None
    reporter_email: str | None
    reporter_address: str | None
    reporter_relationship: str | None

    location_text: str | None
    reported_location: str | None
    reported_coordinates: str | None
    location_confidence: str | None
    initial_report_narrative: str

    notify_opt_in: bool
    notify_channel: str
    notify_target: str | None
    public_tracking_id: str | None

    received_at: datetime | None
    report_received_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


class TimelineEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phase: str
    status: str | None
    notes: str | None
    details: dict[str, Any] | None
    organization_id: int | None
    actor_profile_id: UUID | None
    created_at: datetime


class OrgAccessRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    access_level: str
    reason: str | None
    granted_by_profile_id: UUID | None
    created_at: datetime | None
    updated_at: datetime | None


class AttachmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_name: str
    file_type: str | None
    file_size: int
    organization_id: int | None
    uploaded_by_profile_id: UUID | None
    attachment_metadata: dict[str, Any] | None
    created_at: datetime


class IncidentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cfs_id: int | None
    incident_type: str | None
    priority: str | None
    status: str
    description: str | None
    dispatch_notes: str | None
    created_at: datetime


class PublicTrackingRead(BaseModel):
    """Staff view of the public projection."""

    model_config = ConfigDict(from_attributes=True)

    public_tracking_id: str
    category: str
    location_area: str
    summary: str | None
    updated_at: datetime | None


class PublicTrackingStatus(BaseModel):
    """Unauthenticated tracking page payload."""

    public_tracking_id: str
    category: str
    location_area: str
    summary: str | None
    status: PublicStatus
    last_updated_at: datetime | None


class CfsActionResponse(BaseModel):
    """Result of a CFS operation."""

    cfs_id: int
    message: str
    incident_id: int | None = None
    tracking_id: str | None = None
    attachment_id: UUID | None = None
    revalidate: list[str] = Field(default_factory=list)
    redirect_to: str | None = None
