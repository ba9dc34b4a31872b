"""
Relay Operations - Upstream Endpoint Catalog

Maps each logical operation exposed by the API to its fixed upstream
endpoint and payload shape, producing an OutboundRequest for the
orchestrator. Token resolution lives here too so a missing token is
rejected before any browser activity.
"""

from typing import TYPE_CHECKING, Any

from .exceptions import MissingTokenException
from .request import OutboundRequest

if TYPE_CHECKING:
    from ...core.config import Settings


OWNERSHIP_CHECK_PATH = "/check-warehouse-ownership"
WAREHOUSE_UPDATE_PATH = "/update-orders-warehouse"
ACTIVITY_LOG_PATH = "/activity-logs/create"

DEFAULT_UPDATE_TYPE = 3
ACTIVITY_LOG_ACTION = "revert_warehouse"
DEFAULT_ACTIVITY_DESCRIPTION = "Thao tác đơn hàng"

# Activity-log `type` → warehouse field recorded in info.new
WAREHOUSE_FIELD_BY_TYPE = {
    1: "pickup_warehouse_id",
    2: "current_warehouse_id",
    3: "deliver_warehouse_id",
    4: "return_warehouse_id",
}
DEFAULT_WAREHOUSE_FIELD = "deliver_warehouse_id"


def resolve_token(supplied: str | None, settings: "Settings") -> str:
    """Pick the per-call token, else the configured default.

    Raises:
        MissingTokenException: If neither is usable
    """
    if supplied:
        return supplied
    default = settings.RELAY_DEFAULT_TOKEN
    if default is not None and default.get_secret_value():
        return default.get_secret_value()
    raise MissingTokenException()


def resolve_warehouse_field(type_: Any) -> str:
    """Map an activity-log type to its warehouse field.

    Missing or unrecognized types fall back to deliver_warehouse_id.
    """
    try:
        return WAREHOUSE_FIELD_BY_TYPE.get(int(type_), DEFAULT_WAREHOUSE_FIELD)
    except (TypeError, ValueError):
        return DEFAULT_WAREHOUSE_FIELD


def _endpoint(settings: "Settings", path: str) -> str:
    return settings.RELAY_UPSTREAM_BASE_URL.rstrip("/") + path


def build_ownership_check(warehouse_id: int, token: str, settings: "Settings") -> OutboundRequest:
    """Request for the warehouse ownership check."""
    return OutboundRequest(
        url=_endpoint(settings, OWNERSHIP_CHECK_PATH),
        token=token,
        payload={"warehouse_id": int(warehouse_id)},
        operation="ownership-check",
    )


def build_warehouse_update(
    order_codes: list[str | int],
    warehouse_id: int,
    token: str,
    settings: "Settings",
    type_: int = DEFAULT_UPDATE_TYPE,
    reason: str = "",
) -> OutboundRequest:
    """Request moving a batch of orders to a warehouse."""
    return OutboundRequest(
        url=_endpoint(settings, WAREHOUSE_UPDATE_PATH),
        token=token,
        payload={
            "order_codes": list(order_codes),
            "warehouse_id": int(warehouse_id),
            "reason": reason,
            "type": int(type_),
        },
        operation="warehouse-update",
    )


def build_activity_log(
    order_code: str,
    warehouse_id: int,
    token: str,
    settings: "Settings",
    type_: int | None = None,
    description: str | None = None,
) -> OutboundRequest:
    """Request recording a warehouse change in the order's activity log."""
    field = resolve_warehouse_field(type_)
    return OutboundRequest(
        url=_endpoint(settings, ACTIVITY_LOG_PATH),
        token=token,
        payload={
            "order_code": str(order_code or ""),
            "action": ACTIVITY_LOG_ACTION,
            "description": description or DEFAULT_ACTIVITY_DESCRIPTION,
            "info": {"old": {}, "new": {field: int(warehouse_id)}},
        },
        operation="activity-log",
    )


def build_forward(
    url: str,
    token: str,
    method: str = "POST",
    body: Any = None,
    headers: dict[str, str] | None = None,
) -> OutboundRequest:
    """Pass-through request for callers unaware of the specialised operations."""
    return OutboundRequest(
        url=url,
        token=token,
        payload=body,
        method=method.upper(),
        extra_headers=dict(headers or {}),
        operation="forward",
    )
