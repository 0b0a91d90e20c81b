"""CFS view invalidation events.

Ops views (queue, call detail, incident detail) cache rendered data. After
a transition commits, the lifecycle service signals which paths are stale.
Listeners (cache layers, websocket fan-out) register here; a failing
listener is logged and never affects the caller.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

CFS_LIST_PATH = "/ops/cfs"

InvalidationListener = Callable[[list[str]], None]

_listeners: list[InvalidationListener] = []


def cfs_detail_path(cfs_id: int) -> str:
    return f"{CFS_LIST_PATH}/{cfs_id}"


def incident_detail_path(incident_id: int) -> str:
    return f"/ops/incidents/{incident_id}"


def register_listener(listener: InvalidationListener) -> None:
    if listener not in _listeners:
        _listeners.append(listener)


def unregister_listener(listener: InvalidationListener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def signal_call_changed(
    cfs_id: int,
    *,
    list_view: bool = False,
    incident_id: int | None = None,
) -> list[str]:
    """Notify listeners that views of ``cfs_id`` are stale. Returns the paths."""
    paths = [cfs_detail_path(cfs_id)]
    if list_view:
        paths.append(CFS_LIST_PATH)
    if incident_id:
        paths.append(incident_detail_path(incident_id))

    for listener in list(_listeners):
        try:
            listener(paths)
        except Exception:
            logger.warning("CFS invalidation listener failed", extra={"cfs_id": cfs_id}, exc_info=True)
    return paths
