import os
import logging
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

class Settings:
    def __init__(self):
        """Initialize settings with validation"""
        self._validate_required_env_vars()
        self._load_validated_settings()

    def _validate_required_env_vars(self):
        """Validate all required environment variables"""
        required_vars = {
            "JWT_SECRET_KEY": "JWT secret for session tokens",
            "MONGO_URI": "MongoDB connection string",
            "GEMINI_API_KEY": "Gemini AI API key for interview question generation",
        }

        missing_vars = []
        invalid_vars = []

        for var_name, description in required_vars.items():
            value = os.getenv(var_name)

            if not value:
                missing_vars.append(f"  - {var_name}: {description}")
            elif not self._validate_var_format(var_name, value):
                invalid_vars.append(f"  - {var_name}: Invalid format")

        if missing_vars or invalid_vars:
            error_msg = "🚨 CONFIGURATION ERROR - Application cannot start:\n\n"

            if missing_vars:
                error_msg += "❌ Missing required environment variables:\n"
                error_msg += "\n".join(missing_vars) + "\n\n"

            if invalid_vars:
                error_msg += "❌ Invalid environment variables:\n"
                error_msg += "\n".join(invalid_vars) + "\n\n"

            error_msg += "💡 Please check your .env file and ensure all required variables are set."

            logger.critical(error_msg)
            raise ValueError(error_msg)

        logger.info("✅ All required environment variables validated")

    def _validate_var_format(self, var_name: str, value: str) -> bool:
        """Validate specific environment variable formats"""
        if var_name == "JWT_SECRET_KEY":
            return len(value) >= 32

        elif var_name == "MONGO_URI":
            return value.startswith(("mongodb://", "mongodb+srv://"))

        elif var_name == "GEMINI_API_KEY":
            return value.startswith("AIza") and len(value) > 20

        return True

    def _load_validated_settings(self):
        """Load settings after validation"""
        # Database
        self.MONGO_URI: str = os.getenv("MONGO_URI")
        self.MONGO_DB_NAME: str = os.getenv("MONGO_DB_NAME", "prepwise")

        # Question generation
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY")
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
        # Remote /api/chat used by setup calls; generation runs in-process when unset
        self.GENERATION_BASE_URL: Optional[str] = os.getenv("GENERATION_BASE_URL") or None

        # JWT / session cookie
        self.JWT_SECRET: str = os.getenv("JWT_SECRET_KEY")
        self.JWT_ALGORITHM: str = "HS256"
        self.SESSION_COOKIE_NAME: str = "session"
        self.SESSION_MAX_AGE: int = 60 * 60 * 24 * 7  # one week, in seconds
        self.COOKIE_SECURE: bool = os.getenv("ENVIRONMENT", "development") == "production"

        # CORS
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
        self.CORS_ORIGINS: list = [o.strip() for o in origins.split(",") if o.strip()]

        # Setup dialogue timings (seconds)
        self.NO_RESPONSE_TIMEOUT: float = 10.0
        self.STEP_DELAY: float = 0.5
        self.CONNECT_DELAY: float = 1.0
        self.NAVIGATION_DELAY: float = 1.0
        self.PRE_ANNOUNCEMENT_GRACE: float = 2.0
        self.POST_ANNOUNCEMENT_GRACE: float = 3.0
        self.LANDING_ROUTE: str = "/"
        self.TRANSCRIPT_DISPLAY_TAIL: int = 4

settings = Settings()
