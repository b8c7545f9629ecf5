import json
from typing import Optional, Set
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
import logging
from pydantic import ValidationError
from prepwise.core.config import settings
from prepwise.core.database import DatabaseUnavailableError, get_user_db
from prepwise.core.dependencies import get_session_token
from prepwise.models.setup import ClientMessage, DialogueSnapshot
from prepwise.services.auth_service import AuthService
from prepwise.services.generation_gateway import (
    DirectGenerationGateway,
    GenerationGateway,
    HttpGenerationGateway,
)
from prepwise.services.setup_dialogue import DialogueTimings, SetupDialogueController
from prepwise.services.speech_adapter import WebSocketSpeechAdapter

router = APIRouter()
logger = logging.getLogger(__name__)

# One live setup call per user
active_sessions: Set[str] = set()

def get_generation_gateway() -> GenerationGateway:
    if settings.GENERATION_BASE_URL:
        return HttpGenerationGateway(settings.GENERATION_BASE_URL)
    return DirectGenerationGateway()

def get_dialogue_timings() -> DialogueTimings:
    return DialogueTimings.from_settings()

def get_user_db_factory():
    return get_user_db

@router.websocket("/ws/setup")
async def websocket_setup(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    gateway: GenerationGateway = Depends(get_generation_gateway),
    timings: DialogueTimings = Depends(get_dialogue_timings),
    user_db_factory=Depends(get_user_db_factory),
):
    """Voice-driven interview setup call"""
    session_token = get_session_token(websocket, token)
    if not session_token:
        await websocket.close(code=1008)
        return

    try:
        user = AuthService.get_user(session_token, user_db_factory())
    except DatabaseUnavailableError as e:
        logger.error(f"❌ [WEBSOCKET] Cannot authenticate, database unavailable: {e}")
        await websocket.close(code=1011)
        return

    if user is None:
        logger.warning("❌ [AUTH] Rejected setup call with invalid session")
        await websocket.close(code=1008)
        return

    if user.id in active_sessions:
        logger.warning(f"🚨 [SESSION] User {user.id} already has an active call")
        await websocket.accept()
        await websocket.send_json({
            "type": "terminate",
            "reason": "You already have an active setup call."
        })
        await websocket.close()
        return

    await websocket.accept()
    active_sessions.add(user.id)
    logger.info(f"✅ [WEBSOCKET] Setup call accepted for user {user.id} ({len(active_sessions)} active)")

    adapter = WebSocketSpeechAdapter(websocket)

    async def navigate(url: str) -> None:
        await websocket.send_json({"type": "navigate", "url": url})

    async def publish(snapshot: DialogueSnapshot) -> None:
        await websocket.send_json({"type": "state", **snapshot.model_dump(mode="json")})

    controller = SetupDialogueController(
        adapter=adapter,
        gateway=gateway,
        navigate=navigate,
        user_id=user.id,
        user_name=user.name,
        timings=timings,
        on_update=publish,
        landing_route=settings.LANDING_ROUTE,
        transcript_tail=settings.TRANSCRIPT_DISPLAY_TAIL,
    )

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = ClientMessage.model_validate(json.loads(raw))
            except (ValueError, ValidationError) as e:
                logger.warning(f"⚠️ [WEBSOCKET] Malformed client frame: {e}")
                continue

            if message.type == "start_call":
                await controller.start_call()
            elif message.type == "end_call":
                await controller.disconnect()
            elif not await adapter.handle_client_message(message.model_dump()):
                logger.info(f"❓ [WEBSOCKET] Unknown message type: {message.type}")

    except WebSocketDisconnect:
        logger.info(f"🔌 [WEBSOCKET] Client {user.id} disconnected")
    except Exception as e:
        logger.error(f"❌ [WEBSOCKET] Setup call for user {user.id} failed: {e}")
    finally:
        await controller.shutdown()
        active_sessions.discard(user.id)
        logger.info(f"🧹 [CLEANUP] Setup call ended for user {user.id} ({len(active_sessions)} active)")

@router.get("/health")
async def session_health_check():
    """Health check for setup calls"""
    return {
        "status": "healthy",
        "service": "session",
        "active_sessions": len(active_sessions),
    }
