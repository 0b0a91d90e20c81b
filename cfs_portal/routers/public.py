"""Public endpoints that don't require authentication.

Reporters use these to follow a request by its public tracking id.
"""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from cfs_portal.core.deps import get_db
from cfs_portal.core.rate_limit import PUBLIC_TRACKING_LIMIT, limiter
from cfs_portal.schemas.cfs import PublicTrackingStatus
from cfs_portal.services import cfs_query_service


router = APIRouter(prefix="/public", tags=["public"])


@router.get("/cfs/{tracking_id}", response_model=PublicTrackingStatus)
@limiter.limit(PUBLIC_TRACKING_LIMIT)
def get_public_tracking_status(
    request: Request,
    response: Response,
    tracking_id: str,
    db: Session = Depends(get_db),
):
    """
    Coarse status of a request for the public tracking page.

    Returns 404 when the id is unknown or tracking was disabled.
    """
    status = cfs_query_service.lookup_public_tracking(db, tracking_id)

    # Short public cache
    response.headers["Cache-Control"] = "public, max-age=30"
    return status
