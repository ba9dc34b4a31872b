"""
Relay - API Endpoints

One route per logical operation. Each resolves the token, builds the
upstream request from the operation catalog and hands it to the
orchestrator. The upstream status and body are passed through unchanged:
JSON verbatim, anything else as {"text": <raw body>}.

Endpoints:
- GET  /health  - readiness probe (bootstraps the browser session)
- POST /check   - warehouse ownership check
- POST /update  - move orders to a warehouse
- POST /log     - write an activity-log entry
- POST /forward - generic pass-through
- GET  /metrics - relay counters
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse

from ...api.dependencies import get_orchestrator, get_settings, verify_shared_secret
from ...core.config import Settings
from ...schemas.relay import (
    ActivityLogRequest,
    ForwardRequest,
    HealthResponse,
    OwnershipCheckRequest,
    WarehouseUpdateRequest,
)
from ...services.relay import MissingTokenException, OutboundRequest, RelayOrchestrator
from ...services.relay import operations
from ...services.relay.metrics import get_metrics_summary, get_prometheus_metrics

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"], dependencies=[Depends(verify_shared_secret)])

OrchestratorDep = Annotated[RelayOrchestrator, Depends(get_orchestrator)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def _resolve_token(supplied: str | None, app_settings: Settings) -> str:
    try:
        return operations.resolve_token(supplied, app_settings)
    except MissingTokenException as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


async def _relay(orchestrator: RelayOrchestrator, request: OutboundRequest) -> JSONResponse:
    result = await orchestrator.execute(request)
    # An in-page fetch that never produced a status has nothing to pass through
    status_code = result.status if result.status >= 100 else 502
    return JSONResponse(status_code=status_code, content=result.body)


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_exclude_none=True,
    summary="Readiness probe",
    description="Brings the browser session to READY if needed and reports whether it got there.",
)
async def health(orchestrator: OrchestratorDep) -> Any:
    try:
        await orchestrator.session.ensure_ready()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
    return {"ok": True, "state": orchestrator.session.state.value}


@router.post("/check", summary="Check warehouse ownership")
async def check_ownership(
    body: OwnershipCheckRequest,
    orchestrator: OrchestratorDep,
    app_settings: SettingsDep,
) -> JSONResponse:
    token = _resolve_token(body.token, app_settings)
    request = operations.build_ownership_check(body.warehouse_id, token, app_settings)
    return await _relay(orchestrator, request)


@router.post("/update", summary="Move orders to a warehouse")
async def update_warehouse(
    body: WarehouseUpdateRequest,
    orchestrator: OrchestratorDep,
    app_settings: SettingsDep,
) -> JSONResponse:
    token = _resolve_token(body.token, app_settings)
    request = operations.build_warehouse_update(
        body.order_codes,
        body.warehouse_id,
        token,
        app_settings,
        type_=body.type,
        reason=body.reason,
    )
    return await _relay(orchestrator, request)


@router.post("/log", summary="Write an activity-log entry")
async def create_activity_log(
    body: ActivityLogRequest,
    orchestrator: OrchestratorDep,
    app_settings: SettingsDep,
) -> JSONResponse:
    token = _resolve_token(body.token, app_settings)
    request = operations.build_activity_log(
        body.order_code,
        body.warehouse_id,
        token,
        app_settings,
        type_=body.type,
        description=body.description,
    )
    return await _relay(orchestrator, request)


@router.post("/forward", summary="Generic pass-through")
async def forward(
    body: ForwardRequest,
    orchestrator: OrchestratorDep,
    app_settings: SettingsDep,
) -> JSONResponse:
    token = _resolve_token(body.token, app_settings)
    request = operations.build_forward(
        str(body.url),
        token,
        method=body.method,
        body=body.body,
        headers=body.headers,
    )
    return await _relay(orchestrator, request)


@router.get("/metrics", summary="Relay counters")
async def metrics(orchestrator: OrchestratorDep) -> dict[str, Any]:
    return {
        "session": {
            "state": orchestrator.session.state.value,
            "generation": orchestrator.session.generation,
        },
        "orchestrator": orchestrator.get_metrics(),
        "operations": get_metrics_summary(),
    }


@router.get("/metrics/prometheus", response_class=PlainTextResponse, summary="Relay counters (Prometheus)")
async def metrics_prometheus() -> str:
    return get_prometheus_metrics()
