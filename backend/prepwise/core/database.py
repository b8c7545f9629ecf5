from pymongo import MongoClient, DESCENDING
from datetime import datetime
from bson.objectid import ObjectId
from bson.errors import InvalidId
from prepwise.core.config import settings

import logging
import time
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)

class DatabaseUnavailableError(Exception):
    """Raised when MongoDB cannot be reached"""

def create_database_connection():
    """Create MongoDB connection with error handling and retries"""
    max_retries = 3
    retry_delay = 2

    for attempt in range(max_retries):
        try:
            client = MongoClient(
                settings.MONGO_URI,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                socketTimeoutMS=20000,
                maxPoolSize=10,
                retryWrites=True
            )

            client.admin.command('ping')
            logger.info("✅ [DB] MongoDB connection established successfully")
            return client

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"❌ [DB] MongoDB connection attempt {attempt + 1} failed: {e}")
            if attempt < max_retries - 1:
                logger.info(f"Retrying in {retry_delay} seconds...")
                time.sleep(retry_delay)
                retry_delay *= 2  # Exponential backoff
            else:
                logger.critical("💥 [DB] All MongoDB connection attempts failed")
                return None

# Connected on first use so importing the app never blocks on MongoDB
_client = None

def get_database():
    """Return the application database, connecting lazily"""
    global _client

    if _client is None:
        _client = create_database_connection()
        if _client is None:
            raise DatabaseUnavailableError("Database unavailable")
    return _client[settings.MONGO_DB_NAME]

def check_database_health() -> bool:
    """Check if database connection is healthy"""
    global _client

    try:
        if _client is None:
            get_database()
        _client.admin.command('ping')
        return True
    except DatabaseUnavailableError:
        return False
    except Exception as e:
        logger.error(f"[DB] Database health check failed: {e}")
        logger.info("Attempting database reconnection...")
        _client = create_database_connection()
        return _client is not None

def _serialize(doc: dict) -> dict:
    """Replace Mongo's ObjectId with a string id"""
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc

class UserDB:
    """User database operations"""

    def __init__(self, collection):
        self.collection = collection

    def get_user_by_email(self, email: str):
        try:
            return self.collection.find_one({"email": email})
        except Exception as e:
            logger.error(f"[DB] Database error in get_user_by_email: {e}")
            raise DatabaseUnavailableError(str(e))

    def create_user(self, name: str, email: str, hashed_password: str):
        user = {
            "name": name,
            "email": email,
            "hashed_password": hashed_password,
            "created_at": datetime.now()
        }
        try:
            result = self.collection.insert_one(user)
        except Exception as e:
            logger.error(f"[DB] Database error in create_user: {e}")
            raise DatabaseUnavailableError("Failed to create user")
        user["_id"] = result.inserted_id
        return user

    def get_user_by_id(self, user_id: str):
        try:
            return self.collection.find_one({"_id": ObjectId(user_id)})
        except InvalidId:
            return None
        except Exception as e:
            logger.error(f"[DB] Database error in get_user_by_id: {e}")
            raise DatabaseUnavailableError(str(e))

class InterviewDB:
    """Interview document operations"""

    def __init__(self, collection):
        self.collection = collection

    def create_interview(self, interview: dict) -> str:
        result = self.collection.insert_one(dict(interview))
        logger.info(f"✅ [DB] Interview saved with ID: {result.inserted_id}")
        return str(result.inserted_id)

    def get_interviews_by_user(self, user_id: str) -> list:
        cursor = self.collection.find({"userId": user_id}).sort("createdAt", DESCENDING)
        return [_serialize(doc) for doc in cursor]

    def get_latest_interviews(self, user_id: str, limit: int = 20) -> list:
        cursor = (
            self.collection
            .find({"finalized": True, "userId": {"$ne": user_id}})
            .sort("createdAt", DESCENDING)
            .limit(limit)
        )
        return [_serialize(doc) for doc in cursor]

    def get_interview_by_id(self, interview_id: str):
        try:
            doc = self.collection.find_one({"_id": ObjectId(interview_id)})
        except InvalidId:
            return None
        return _serialize(doc) if doc else None

def get_user_db() -> UserDB:
    return UserDB(get_database()["users"])

def get_interview_db() -> InterviewDB:
    return InterviewDB(get_database()["interviews"])
