import asyncio
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from prepwise.core.database import InterviewDB, get_interview_db
from prepwise.models.interview import GenerationRequest
from prepwise.services.generation_service import (
    InterviewGenerationService,
    MissingFieldsError,
    QuestionParseError,
    get_generation_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/chat")
async def generate_interview(
    data: GenerationRequest,
    service: InterviewGenerationService = Depends(get_generation_service),
    interview_db: InterviewDB = Depends(get_interview_db),
):
    """Generate interview questions from the setup answers and save the interview"""
    logger.info(f"📨 [GENERATION] Received request: {data.model_dump()}")

    try:
        result = await asyncio.to_thread(service.generate_interview, data, interview_db)
        return JSONResponse(result.model_dump(exclude_none=True), status_code=200)
    except MissingFieldsError as e:
        return JSONResponse({
            "success": False,
            "error": str(e),
            "received": data.model_dump(),
            "missing": e.missing
        }, status_code=400)
    except QuestionParseError as e:
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)
    except Exception as e:
        logger.error(f"❌ [GENERATION] Error generating interview: {e}")
        return JSONResponse({"success": False, "error": str(e) or "Unknown error occurred"}, status_code=500)

@router.get("/chat")
async def chat_health():
    return {"success": True, "data": "Interview API is working!"}
