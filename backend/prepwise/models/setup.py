from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

class DialoguePhase(str, Enum):
    SETUP = "SETUP"
    GENERATING = "GENERATING"
    FINISHED = "FINISHED"

class CallStatus(str, Enum):
    INACTIVE = "INACTIVE"
    CONNECTING = "CONNECTING"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"

class Speaker(str, Enum):
    AI = "ai"
    USER = "user"

class SetupAnswers(BaseModel):
    role: str = ""
    level: str = ""
    techstack: str = ""
    type: str = ""
    amount: str = ""

class TranscriptEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    speaker: Speaker
    text: str
    timestamp: int  # epoch milliseconds

class DialogueSnapshot(BaseModel):
    """What the call screen renders"""
    phase: DialoguePhase
    call_status: CallStatus
    is_speaking: bool
    is_listening: bool
    question_index: int
    transcript: List[TranscriptEntry] = []

class ClientMessage(BaseModel):
    type: str  # "start_call", "end_call", "speech_ended", "recognition_result", ...
    message_id: Optional[str] = None
    text: Optional[str] = None
    is_final: Optional[bool] = None
    error: Optional[str] = None
