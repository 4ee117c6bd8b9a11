from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from air1_monitor.services.controller import ListenerController


def get_controller(request: Request) -> ListenerController:
    return request.app.state.controller
