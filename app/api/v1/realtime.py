from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.realtime import manager

router = APIRouter()


@router.websocket("/ws")
async def inventory_updates(websocket: WebSocket):
    await manager.connect(websocket)
    try:
        while True:
            # Clients only listen; "ping" is answered so they can detect dead links
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
