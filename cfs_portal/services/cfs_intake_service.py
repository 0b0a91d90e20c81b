"""Call intake: validate, create, notify.

Order of checks, all before any write:
1. ``can_create_cfs``, then an acting organization
2. anonymous reporters drop person/organization links; both links set is rejected
3. notify consistency (channel + normalized target)
4. public tracking permission and fields
"""

import logging
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability, require_organization
from cfs_portal.core.structured_logging import build_log_context
from cfs_portal.db.enums import NotifyChannel
from cfs_portal.schemas.cfs import CfsCreate
from cfs_portal.services import cfs_notifications, cfs_procedures
from cfs_portal.services.cfs_errors import (
    AuthorizationError,
    CfsValidationError,
    StoreProcedureError,
)
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition
from cfs_portal.utils.normalization import normalize_notify_target

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _validate_reporter_links(data: CfsCreate) -> tuple[int | None, int | None]:
    person_id = data.reporting_person_id
    org_id = data.reporting_organization_id
    if data.anonymous_reporter:
        person_id = None
        org_id = None
    if person_id and org_id:
        raise CfsValidationError(
            "Select either a reporting person or organization, not both.",
            {
                "reporting_person_id": "Select either a person or organization.",
                "reporting_organization_id": "Select either a person or organization.",
            },
        )
    return person_id, org_id


def _validate_notify(data: CfsCreate) -> tuple[NotifyChannel, str | None]:
    if not data.notify_opt_in:
        return NotifyChannel.NONE, None

    channel = data.notify_channel
    if channel == NotifyChannel.NONE:
        message = "Select a notification channel or disable notifications."
        raise CfsValidationError(message, {"notify_channel": message})

    target = normalize_notify_target(channel.value, data.notify_target)
    if channel == NotifyChannel.SMS and not target:
        raise CfsValidationError(
            "Enter a valid phone number for SMS updates.",
            {"notify_target": "Enter a valid phone number."},
        )
    if channel == NotifyChannel.EMAIL and (not target or "@" not in target):
        raise CfsValidationError(
            "Enter a valid email address.",
            {"notify_target": "Enter a valid email address."},
        )
    return channel, target


def _validate_public_tracking(ctx: AccessContext, data: CfsCreate) -> None:
    if not data.public_tracking_enabled:
        return
    if not ctx.can_public_track_cfs:
        raise AuthorizationError("You do not have permission to enable public tracking.")

    field_errors: dict[str, str] = {}
    if not data.public_category:
        field_errors["public_category"] = "Select a public category."
    if not data.public_location_area:
        field_errors["public_location_area"] = "Provide a public location area."
    if field_errors:
        raise CfsValidationError(
            "Provide a public category and location to enable tracking.", field_errors
        )


def build_create_payload(ctx: AccessContext, data: CfsCreate) -> dict[str, Any]:
    """Validate ``data`` and return the normalized payload for the create procedure."""
    person_id, reporting_org_id = _validate_reporter_links(data)
    channel, target = _validate_notify(data)
    _validate_public_tracking(ctx, data)

    payload = {key: _plain(value) for key, value in data.model_dump().items()}
    payload.update(
        owning_organization_id=ctx.organization_id,
        reporting_person_id=person_id,
        reporting_organization_id=reporting_org_id,
        notify_channel=channel.value,
        notify_target=target,
    )
    if not data.public_tracking_enabled:
        payload.update(public_category=None, public_location_area=None, public_summary=None)
    return payload


def create_call(db: Session, ctx: AccessContext, data: CfsCreate) -> CfsActionResult:
    """Create a call for service and return its id (plus tracking id when enabled)."""
    require_capability(ctx, "can_create_cfs", "You do not have permission to create calls for service.")
    require_organization(ctx, "Select an acting organization before creating a call.")

    payload = build_create_payload(ctx, data)
    result = cfs_procedures.create_call(db, ctx, payload)

    cfs_id = int(result.get("call_id") or 0)
    if cfs_id <= 0:
        raise StoreProcedureError("Unable to create the call.", procedure="cfs_create_call")

    logger.info(
        "CFS call created",
        extra=build_log_context(
            profile_id=ctx.profile_id, org_id=ctx.organization_id, cfs_id=cfs_id, operation="create"
        ),
    )

    template = None
    if payload["notify_opt_in"] and payload["notify_target"]:
        template = cfs_notifications.received_template(cfs_id)

    return complete_transition(
        db,
        ctx,
        cfs_id,
        "Call created.",
        template=template,
        refresh_list=True,
        tracking_id=result.get("tracking_id"),
    )
