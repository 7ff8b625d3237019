"""nginx lifecycle API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from nginxswitch.app.actions import ActionMenu, Intent
from nginxswitch.app.dependencies import get_controller, get_menu
from nginxswitch.control import NginxController
from nginxswitch.core.domain import NginxStatus

router = APIRouter(prefix="/nginx", tags=["nginx"])

Controller = Annotated[NginxController, Depends(get_controller)]
Menu = Annotated[ActionMenu, Depends(get_menu)]


# =============================================================================
# Response Models
# =============================================================================


class ActionsResponse(BaseModel):
    """Which intents are currently enabled."""

    start: bool
    stop: bool
    restart: bool
    reload: bool


class NginxStateResponse(BaseModel):
    """Controller snapshot."""

    status: NginxStatus
    container_id: str | None
    actions: ActionsResponse


def _snapshot(controller: NginxController, menu: ActionMenu) -> NginxStateResponse:
    return NginxStateResponse(
        status=controller.status,
        container_id=controller.container_id,
        actions=ActionsResponse(**{intent.value: on for intent, on in menu.enabled.items()}),
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("", response_model=NginxStateResponse)
async def get_state(controller: Controller, menu: Menu) -> NginxStateResponse:
    """Current status and enabled actions."""
    return _snapshot(controller, menu)


@router.post("/{intent}", response_model=NginxStateResponse)
async def run_intent(
    intent: Intent, controller: Controller, menu: Menu
) -> NginxStateResponse:
    """Run intent to completion.

    Rejected or failed operations surface as NginxSwitchError responses
    (409 invalid transition, 502/503/504 runtime failures).
    """
    await menu.dispatch(intent)
    return _snapshot(controller, menu)
