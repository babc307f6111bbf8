from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from schemas import PresenceRead
from services.presence import PresenceOracle, get_presence
from utils.auth import get_current_user_id
from utils.logger import get_logger

router = APIRouter(prefix="/presence", tags=["Presence"])
logger = get_logger("presence")


@router.websocket("/ws")
async def presence_socket(websocket: WebSocket):
    """
    Keeps the user online while the socket stays open. The user id is the
    X-User-Id principal set by the auth gateway, never a client-chosen value.
    """
    user_id = websocket.headers.get("x-user-id")
    if not user_id:
        await websocket.close(code=1008)
        return

    presence = websocket.app.state.presence
    presence.connect(user_id)
    logger.info("%s connected", user_id)
    try:
        await websocket.accept()
        while True:
            # Clients may send pings, content is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        presence.disconnect(user_id)
        logger.info("%s disconnected", user_id)


@router.get("/{user_id}", response_model=PresenceRead)
def get_user_presence(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    presence: PresenceOracle = Depends(get_presence),
):
    return PresenceRead(
        user_id=user_id,
        is_online=presence.is_online(user_id),
        last_seen=presence.last_seen(user_id),
    )
