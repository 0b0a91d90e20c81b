"""Call-for-Service enums."""

from enum import Enum


class CfsStatus(str, Enum):
    """
    Lifecycle phase of a call.

    received -> triaged -> verified -> {dispatched, dismissed, duplicate}
    Transitions are gated by capability, not by the current phase.
    """

    RECEIVED = "received"
    TRIAGED = "triaged"
    VERIFIED = "verified"
    DISPATCHED = "dispatched"
    DISMISSED = "dismissed"
    DUPLICATE = "duplicate"


class CfsOrigin(str, Enum):
    COMMUNITY = "community"
    SYSTEM = "system"


class CfsSource(str, Enum):
    WEB_FORM = "web_form"
    PHONE = "phone"
    SMS = "sms"
    EMAIL = "email"
    SOCIAL = "social"
    API = "api"
    STAFF_OBSERVED = "staff_observed"


class ReportMethod(str, Enum):
    PHONE = "phone"
    WALK_IN = "walk_in"
    SOCIAL_MEDIA = "social_media"
    EMAIL = "email"
    RADIO = "radio"
    AGENCY_TRANSFER = "agency_transfer"
    ONLINE_FORM = "online_form"


class ReportPriority(str, Enum):
    """Reporter-facing priority assessment recorded at intake and triage."""

    IMMEDIATE = "immediate"
    URGENT = "urgent"
    ROUTINE = "routine"
    INFORMATIONAL = "informational"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    UNABLE_TO_VERIFY = "unable_to_verify"


class VerificationMethod(str, Enum):
    CALLBACK = "callback"
    FIELD_CHECK = "field_check"
    AGENCY_CONFIRM = "agency_confirm"
    CROSS_REFERENCE = "cross_reference"
    NONE_REQUIRED = "none_required"


class ReportStatus(str, Enum):
    """Closure classification, independent of CfsStatus."""

    ACTIVE = "active"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    DUPLICATE = "duplicate"
    FALSE_ALARM = "false_alarm"
    ARCHIVED = "archived"


class NotifyChannel(str, Enum):
    NONE = "none"
    EMAIL = "email"
    SMS = "sms"


class PublicCategory(str, Enum):
    CLEANUP = "cleanup"
    OUTREACH = "outreach"
    WELFARE_CHECK = "welfare_check"
    SUPPLY_DISTRIBUTION = "supply_distribution"
    OTHER = "other"


class PublicStatus(str, Enum):
    """Coarse status bucket shown on the public tracking page."""

    RECEIVED = "received"
    TRIAGED = "triaged"
    DISPATCHED = "dispatched"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class CfsAccessLevel(str, Enum):
    VIEW = "view"
    COLLABORATE = "collaborate"
    EDIT = "edit"
    DISPATCH = "dispatch"


class IncidentType(str, Enum):
    OUTREACH = "outreach"
    WELFARE_CHECK = "welfare_check"
    MEDICAL = "medical"
    MENTAL_HEALTH = "mental_health"
    MENTAL_HEALTH_CRISIS = "mental_health_crisis"
    OVERDOSE = "overdose"
    DEATH = "death"
    ASSAULT = "assault"
    THEFT = "theft"
    DISTURBANCE = "disturbance"
    PROPERTY_DAMAGE = "property_damage"
    FIRE = "fire"
    CLEANUP = "cleanup"
    SUPPLY_DISTRIBUTION = "supply_distribution"
    OTHER = "other"


class IncidentPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TimelinePhase(str, Enum):
    """Kind of append-only timeline entry."""

    INTAKE = "intake"
    TRIAGE = "triage"
    VERIFICATION = "verification"
    STATUS = "status"
    NOTE = "note"
    RESOLUTION = "resolution"
    DISPATCH = "dispatch"
    OWNERSHIP = "ownership"
    SHARING = "sharing"
    PUBLIC_TRACKING = "public_tracking"
    ATTACHMENT = "attachment"


class OwnerScope(str, Enum):
    """Queue filter by how the acting organization relates to a call."""

    ALL = "all"
    OWNED = "owned"
    SHARED = "shared"


# Defaults applied when intake/triage payloads leave a field blank
DEFAULT_CFS_ORIGIN = CfsOrigin.COMMUNITY
DEFAULT_CFS_SOURCE = CfsSource.PHONE
DEFAULT_REPORT_METHOD = ReportMethod.PHONE
DEFAULT_REPORT_PRIORITY = ReportPriority.ROUTINE
DEFAULT_VERIFICATION_STATUS = VerificationStatus.PENDING
DEFAULT_VERIFICATION_METHOD = VerificationMethod.NONE_REQUIRED
DEFAULT_DISMISS_REPORT_STATUS = ReportStatus.RESOLVED
DEFAULT_ACCESS_LEVEL = CfsAccessLevel.VIEW
DEFAULT_NOTIFY_CHANNEL = NotifyChannel.NONE
DEFAULT_INCIDENT_STATUS = "open"


def format_label(value: str) -> str:
    """Render an enum value for people: ``false_alarm`` -> ``False alarm``."""
    text = str(value).replace("_", " ").strip()
    return text[:1].upper() + text[1:]
