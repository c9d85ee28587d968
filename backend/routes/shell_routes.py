"""
Shell WebSocket
One connection per client view. Carries tab switching, live snapshots,
and both forms.

Client sends:
- {"type": "LOGIN_FORM_UPDATE", "field": "email", "value": "..."}
- {"type": "TOGGLE_AUTH_MODE"} / {"type": "LOGIN_SUBMIT"}
- {"type": "SWITCH_TAB", "tab": "browse" | "predictions" | "submit"}
- {"type": "FORM_UPDATE", "field": "stock", "value": "aapl"}
- {"type": "SUBMIT_PREDICTION"} / {"type": "LOGOUT"}

Client receives SESSION, LOGIN_FORM, TAB, LOADING, SNAPSHOT, FORM,
SUBMIT_RESULT and ERROR messages.
"""
import asyncio
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from core.errors import AuthenticationError, StoreLookupError
from core.websocket_manager import manager
from routes.dependencies import get_analysts_service, get_predictions_service, get_session_context
from services.analysts_service import AnalystsService
from services.predictions_service import PredictionsService
from services.session_service import SessionContext
from services.shell import ShellController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["shell"])


@router.websocket("/ws/shell")
async def shell_socket(
    websocket: WebSocket,
    token: Optional[str] = None,
    session: SessionContext = Depends(get_session_context),
    analysts: AnalystsService = Depends(get_analysts_service),
    predictions: PredictionsService = Depends(get_predictions_service),
):
    """
    Without a token the client starts on the login form. An invalid token
    closes the socket with 4401, an unreachable identity store with 1011.
    """
    if token:
        try:
            await run_in_threadpool(session.restore, token)
        except AuthenticationError:
            await websocket.close(code=4401)
            return
        except StoreLookupError as e:
            logger.error(f"Shell session restore failed: {e}")
            await websocket.close(code=1011)
            return

    connection_id = str(uuid.uuid4())
    await manager.connect(websocket, connection_id)

    publish = manager.publisher(connection_id, asyncio.get_running_loop())
    shell = ShellController(session, analysts, predictions, publish)
    pump = asyncio.create_task(manager.pump(connection_id))

    try:
        await run_in_threadpool(shell.start)
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                publish("ERROR", {"message": "Messages must be JSON objects"})
                continue
            await run_in_threadpool(shell.handle, message)
    except WebSocketDisconnect:
        logger.info(f"Shell connection {connection_id} closed")
    finally:
        await run_in_threadpool(shell.close)
        await manager.stop_pump(pump)
        manager.disconnect(connection_id)
