from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager
from prepwise.api import auth, chat, interviews, session
from prepwise.core.config import settings
from prepwise.core.database import DatabaseUnavailableError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 Starting Prepwise setup service...")
    validate_configuration()
    logger.info("✅ Application ready!")

    yield

    logger.info("🛑 Shutting down Prepwise setup service...")

app = FastAPI(title="Prepwise Interview Setup", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def validate_configuration():
    """Report what the service will talk to; MongoDB itself is connected on first use"""
    logger.info(f"🔍 Question model: {settings.GEMINI_MODEL}")
    logger.info(f"🔍 Database: {settings.MONGO_DB_NAME}")
    logger.info(f"🔍 No-response timeout: {settings.NO_RESPONSE_TIMEOUT}s")

@app.exception_handler(DatabaseUnavailableError)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailableError):
    logger.error(f"❌ [DB] {request.url.path}: {exc}")
    return JSONResponse({"success": False, "error": "Database unavailable"}, status_code=503)

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(chat.router, prefix="/api", tags=["Question Generation"])
app.include_router(interviews.router, prefix="/interviews", tags=["Interviews"])
app.include_router(session.router, prefix="/session", tags=["Setup Calls"])

@app.get("/")
async def root():
    return {"message": "Prepwise Interview Setup API"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "prepwise"}
