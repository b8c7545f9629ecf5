import json
import logging
import os
import random
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from google import genai
from google.genai import types
from jinja2 import Environment, FileSystemLoader

from prepwise.core.config import settings
from prepwise.core.database import InterviewDB
from prepwise.models.interview import GenerationRequest, GenerationResponse, InterviewDocument

logger = logging.getLogger(__name__)

# Setup Jinja2 environment for templates
template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'templates')
env = Environment(loader=FileSystemLoader(template_dir))

COVER_IMAGES = [
    "/covers/adobe.png",
    "/covers/amazon.png",
    "/covers/facebook.png",
    "/covers/hostinger.png",
    "/covers/pinterest.png",
    "/covers/quora.png",
    "/covers/reddit.png",
    "/covers/skype.png",
    "/covers/spotify.png",
    "/covers/telegram.png",
    "/covers/tiktok.png",
    "/covers/yahoo.png",
]

class GenerationError(Exception):
    """Interview generation could not complete"""

class MissingFieldsError(GenerationError):
    def __init__(self, missing: List[str]):
        super().__init__("Missing required fields")
        self.missing = missing

class QuestionParseError(GenerationError):
    """The model reply did not contain a usable question list"""

def get_random_interview_cover() -> str:
    return random.choice(COVER_IMAGES)

def split_techstack(techstack: str) -> List[str]:
    return [tech.strip() for tech in techstack.split(",") if tech.strip()]

def parse_questions(text: str) -> List[str]:
    """Pull the JSON array of questions out of the model reply"""
    match = re.search(r"\[.*\]", (text or "").strip(), re.DOTALL)
    if not match:
        raise QuestionParseError("Failed to parse generated questions")

    try:
        questions = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise QuestionParseError("Failed to parse generated questions") from e

    if (not isinstance(questions, list) or not questions
            or not all(isinstance(q, str) and q.strip() for q in questions)):
        raise QuestionParseError("Invalid questions format - expected non-empty array")

    return [q.strip() for q in questions]

class BaseLLMClient(ABC):
    @abstractmethod
    def generate(self, prompt: str) -> str:
        pass

class GeminiClient(BaseLLMClient):
    def __init__(self, model: Optional[str] = None, temperature: float = 0.7):
        self.model = model or settings.GEMINI_MODEL
        self.temperature = temperature
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(api_key=settings.GEMINI_API_KEY)
        return self._client

    def generate(self, prompt: str) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction="You are an experienced technical recruiter preparing spoken mock interviews. "
                "You reply with plain JSON only.",
                temperature=self.temperature
            )
        )
        return (response.text or "").strip()

class InterviewGenerationService:
    def __init__(self, llm_client: Optional[BaseLLMClient] = None):
        self.llm_client = llm_client or GeminiClient()

    def _build_prompt(self, request: GenerationRequest) -> str:
        """Build question prompt using Jinja2 template"""
        template = env.get_template("interview_questions.j2")
        return template.render(
            amount=request.amount,
            role=request.role,
            level=request.level,
            techstack=request.techstack,
            type=request.type
        )

    def generate_interview(self, request: GenerationRequest, interview_db: InterviewDB) -> GenerationResponse:
        """Generate questions for the setup answers and persist the interview"""
        missing = request.missing_fields()
        if missing:
            raise MissingFieldsError(missing)

        logger.info(f"🧠 [GENERATION] Generating {request.amount} questions for {request.role} ({request.level})")
        raw = self.llm_client.generate(self._build_prompt(request))
        logger.debug(f"[GENERATION] Raw response: {raw}")

        try:
            questions = parse_questions(raw)
        except QuestionParseError:
            logger.error(f"❌ [GENERATION] Could not parse questions from: {raw}")
            raise

        interview = InterviewDocument(
            role=request.role,
            type=request.type,
            level=request.level,
            techstack=split_techstack(request.techstack),
            questions=questions,
            userId=request.userid,
            finalized=True,
            coverImage=get_random_interview_cover(),
            createdAt=datetime.now(timezone.utc).isoformat(),
        )

        interview_id = interview_db.create_interview(interview.model_dump())
        logger.info(f"✅ [GENERATION] Interview {interview_id} saved with {len(questions)} questions")

        return GenerationResponse(success=True, interviewId=interview_id, questionsCount=len(questions))

_generation_service: Optional[InterviewGenerationService] = None

def get_generation_service() -> InterviewGenerationService:
    global _generation_service
    if _generation_service is None:
        _generation_service = InterviewGenerationService()
    return _generation_service
