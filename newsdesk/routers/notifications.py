import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from newsdesk.notifications import hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.websocket("/ws/notifications")
async def notifications(websocket: WebSocket):
    """
    Push channel for change signals.  The server only sends; anything the
    client sends is read and ignored so disconnects are noticed.
    """
    await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(websocket)
