import asyncio
import logging
from typing import Callable, Optional, Protocol

import httpx
from pydantic import ValidationError

from prepwise.core.config import settings
from prepwise.core.database import InterviewDB, get_interview_db
from prepwise.models.interview import GenerationRequest, GenerationResponse
from prepwise.models.setup import SetupAnswers
from prepwise.services.generation_service import InterviewGenerationService, get_generation_service

logger = logging.getLogger(__name__)

def build_request(answers: SetupAnswers, user_id: str) -> GenerationRequest:
    return GenerationRequest(**answers.model_dump(), userid=user_id)

class GenerationGateway(Protocol):
    async def generate(self, answers: SetupAnswers, user_id: str) -> GenerationResponse:
        ...

class HttpGenerationGateway:
    """Calls the generation endpoint over HTTP"""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 60.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        base_url = base_url or settings.GENERATION_BASE_URL
        if not base_url:
            raise ValueError("GENERATION_BASE_URL is not configured")
        self.url = f"{base_url.rstrip('/')}/api/chat"
        self.timeout = timeout
        self.transport = transport

    async def generate(self, answers: SetupAnswers, user_id: str) -> GenerationResponse:
        payload = build_request(answers, user_id).model_dump()
        logger.info(f"🌐 [GENERATION] POST {self.url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                res = await client.post(self.url, json=payload)
            data = res.json()
            if not isinstance(data, dict) or "success" not in data:
                raise ValueError(f"Unexpected response body: {data!r}")
            return GenerationResponse.model_validate(data)
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.error(f"❌ [GENERATION] Request failed: {e}")
            return GenerationResponse(success=False, error=str(e))

class DirectGenerationGateway:
    """Calls the generation service in-process, off the event loop"""

    def __init__(self, service: Optional[InterviewGenerationService] = None,
                 interview_db_factory: Callable[[], InterviewDB] = get_interview_db):
        self.service = service
        self.interview_db_factory = interview_db_factory

    def _generate_sync(self, request: GenerationRequest) -> GenerationResponse:
        service = self.service or get_generation_service()
        return service.generate_interview(request, self.interview_db_factory())

    async def generate(self, answers: SetupAnswers, user_id: str) -> GenerationResponse:
        request = build_request(answers, user_id)
        try:
            return await asyncio.to_thread(self._generate_sync, request)
        except Exception as e:
            logger.error(f"❌ [GENERATION] Generation failed: {e}")
            return GenerationResponse(success=False, error=str(e) or type(e).__name__)
