import logging
import uuid
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

SpeechEndHandler = Callable[[], Awaitable[None]]
UtteranceHandler = Callable[[str], Awaitable[None]]
ErrorHandler = Callable[[str], Awaitable[None]]

class SpeechAdapter(ABC):
    """Speech synthesis and recognition behind speak/listen primitives.

    Speaking and listening are mutually exclusive: ``speak`` stops listening
    before playback starts and ``start_listening`` refuses to run while an
    utterance is playing. Only final recognition results reach the
    ``on_final_utterance`` handler.
    """

    def __init__(self):
        self.is_speaking = False
        self.is_listening = False
        self.current_message_id: Optional[str] = None
        self._on_speech_end: Optional[SpeechEndHandler] = None
        self._on_final_utterance: Optional[UtteranceHandler] = None
        self._on_error: Optional[ErrorHandler] = None

    def register(self, on_speech_end: SpeechEndHandler,
                 on_final_utterance: UtteranceHandler,
                 on_error: ErrorHandler) -> None:
        self._on_speech_end = on_speech_end
        self._on_final_utterance = on_final_utterance
        self._on_error = on_error

    async def speak(self, text: str) -> str:
        """Start playing ``text``, cancelling whatever is still audible"""
        if self.is_speaking:
            logger.info(f"🔇 [SPEECH] Cancelling utterance {self.current_message_id}")
            await self._cancel_playback(self.current_message_id)
        await self.stop_listening()

        message_id = str(uuid.uuid4())
        self.current_message_id = message_id
        self.is_speaking = True
        logger.info(f"🔊 [SPEECH] Speaking: {text[:50]}...")
        await self._play(text, message_id)
        return message_id

    async def handle_speech_end(self, message_id: Optional[str] = None) -> None:
        """Playback finished; ignores completions of cancelled utterances"""
        if not self.is_speaking:
            return
        if message_id is not None and message_id != self.current_message_id:
            logger.debug(f"[SPEECH] Ignoring stale completion for {message_id}")
            return

        self.is_speaking = False
        self.current_message_id = None
        if self._on_speech_end:
            await self._on_speech_end()

    async def start_listening(self) -> bool:
        if self.is_listening or self.is_speaking:
            return False
        self.is_listening = True
        logger.info("🎧 [SPEECH] Starting recognition...")
        await self._begin_recognition()
        return True

    async def stop_listening(self) -> None:
        if not self.is_listening:
            return
        self.is_listening = False
        logger.info("🛑 [SPEECH] Stopping recognition...")
        await self._end_recognition()

    async def handle_recognition_result(self, text: str, is_final: bool) -> None:
        if not is_final:
            return
        if not self.is_listening:
            logger.debug(f"[SPEECH] Dropping result while not listening: {text}")
            return

        logger.info(f"🗣️ [SPEECH] Transcript received: {text}")
        if self._on_final_utterance:
            await self._on_final_utterance((text or "").strip())

    async def handle_recognition_error(self, error: str) -> None:
        logger.warning(f"⚠️ [SPEECH] Recognition error: {error}")
        self.is_listening = False
        if self._on_error:
            await self._on_error(error)

    def handle_recognition_ended(self) -> None:
        self.is_listening = False

    async def cancel(self) -> None:
        """Silence playback and recognition"""
        if self.is_speaking:
            await self._cancel_playback(self.current_message_id)
            self.is_speaking = False
            self.current_message_id = None
        await self.stop_listening()

    @abstractmethod
    async def _play(self, text: str, message_id: str) -> None:
        pass

    @abstractmethod
    async def _cancel_playback(self, message_id: Optional[str]) -> None:
        pass

    @abstractmethod
    async def _begin_recognition(self) -> None:
        pass

    @abstractmethod
    async def _end_recognition(self) -> None:
        pass

class WebSocketSpeechAdapter(SpeechAdapter):
    """Drives the browser's speechSynthesis / SpeechRecognition over a WebSocket"""

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self.websocket = websocket

    async def _play(self, text: str, message_id: str) -> None:
        await self.websocket.send_json({
            "type": "speak",
            "text": text,
            "message_id": message_id,
            "lang": "en-US"
        })

    async def _cancel_playback(self, message_id: Optional[str]) -> None:
        await self.websocket.send_json({"type": "cancel_speech", "message_id": message_id})

    async def _begin_recognition(self) -> None:
        await self.websocket.send_json({"type": "start_listening", "lang": "en-US"})

    async def _end_recognition(self) -> None:
        await self.websocket.send_json({"type": "stop_listening"})

    async def handle_client_message(self, message: dict) -> bool:
        """Route a speech event from the browser. Returns False if not a speech event."""
        msg_type = message.get("type")

        if msg_type in ("speech_ended", "audio_playback_completed"):
            await self.handle_speech_end(message.get("message_id"))
        elif msg_type == "recognition_result":
            await self.handle_recognition_result(message.get("text") or "",
                                                 bool(message.get("is_final")))
        elif msg_type == "recognition_error":
            await self.handle_recognition_error(message.get("error") or "unknown")
        elif msg_type == "recognition_ended":
            self.handle_recognition_ended()
        else:
            return False
        return True
