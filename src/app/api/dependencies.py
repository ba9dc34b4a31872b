from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from ..core.config import Settings
from ..services.relay import RelayOrchestrator


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_orchestrator(request: Request) -> RelayOrchestrator:
    """Process-wide orchestrator (and its browser session)."""
    return request.app.state.orchestrator


async def verify_shared_secret(
    app_settings: Annotated[Settings, Depends(get_settings)],
    x_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Reject callers without the shared secret, when one is configured."""
    secret = app_settings.RELAY_SHARED_SECRET
    if secret is None or not secret.get_secret_value():
        return
    if x_secret != secret.get_secret_value():
        raise HTTPException(status_code=401, detail="unauthorized")
