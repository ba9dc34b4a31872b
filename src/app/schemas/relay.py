from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class RelayRequestBase(BaseModel):
    """Fields shared by every relayed operation."""

    model_config = ConfigDict(extra="ignore")

    token: Annotated[
        str | None,
        Field(
            default=None,
            description="Upstream token. Falls back to the relay's configured default when omitted",
        ),
    ]


class OwnershipCheckRequest(RelayRequestBase):
    """Request body for POST /check."""

    warehouse_id: Annotated[
        int,
        Field(description="Warehouse to check ownership of", examples=[1552]),
    ]


class WarehouseUpdateRequest(RelayRequestBase):
    """Request body for POST /update."""

    order_codes: Annotated[
        list[str | int],
        Field(default_factory=list, description="Orders to move, forwarded as given", examples=[["ABC123"]]),
    ]
    warehouse_id: Annotated[
        int,
        Field(description="Target warehouse", examples=[1552]),
    ]
    type: Annotated[
        int,
        Field(default=3, description="Upstream update type"),
    ]
    reason: Annotated[
        str,
        Field(default="", description="Free-text reason"),
    ]


class ActivityLogRequest(RelayRequestBase):
    """Request body for POST /log."""

    order_code: Annotated[
        str,
        Field(default="", description="Order the log entry belongs to", examples=["ABC123"]),
    ]
    warehouse_id: Annotated[
        int,
        Field(description="New warehouse recorded in the log", examples=[1552]),
    ]
    type: Annotated[
        int | None,
        Field(
            default=None,
            description="1=pickup, 2=current, 3=deliver, 4=return; anything else records deliver",
        ),
    ]
    description: Annotated[
        str | None,
        Field(default=None, description="Log description"),
    ]


class ForwardRequest(RelayRequestBase):
    """Request body for POST /forward (generic pass-through)."""

    url: Annotated[
        HttpUrl,
        Field(description="Upstream URL to call", examples=["https://fe-online-gateway.ghn.vn/..."]),
    ]
    method: Annotated[
        str,
        Field(default="POST", pattern=r"^[A-Za-z]+$", description="HTTP method"),
    ]
    body: Annotated[
        Any,
        Field(default=None, description="JSON body sent as-is"),
    ]
    headers: Annotated[
        dict[str, str] | None,
        Field(default=None, description="Extra headers merged over the relay's fixed set"),
    ]


class HealthResponse(BaseModel):
    """Readiness probe result."""

    ok: bool
    state: str | None = None
    error: str | None = None
