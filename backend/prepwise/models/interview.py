from typing import List, Optional, Any
from pydantic import BaseModel

class GenerationRequest(BaseModel):
    role: Optional[str] = None
    level: Optional[str] = None
    techstack: Optional[str] = None
    type: Optional[str] = None
    amount: Optional[Any] = None  # spoken answers arrive as text, clients may send a number
    userid: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [
            name for name in ("type", "role", "level", "techstack", "amount", "userid")
            if not str(getattr(self, name) or "").strip()
        ]

class GenerationResponse(BaseModel):
    success: bool
    interviewId: Optional[str] = None
    questionsCount: Optional[int] = None
    error: Optional[str] = None

class InterviewDocument(BaseModel):
    role: str
    type: str
    level: str
    techstack: List[str]
    questions: List[str]
    userId: str
    finalized: bool = True
    coverImage: str
    createdAt: str

class Interview(InterviewDocument):
    id: str
