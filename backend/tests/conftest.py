import asyncio
import os
from types import SimpleNamespace

# Settings validate the environment at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-1234")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("GEMINI_API_KEY", "AIzaTestKeyForUnitTests000000000")

import pytest
from bson.objectid import ObjectId
from pymongo import DESCENDING

from prepwise.models.interview import GenerationResponse
from prepwise.services.setup_dialogue import DialogueTimings
from prepwise.services.speech_adapter import SpeechAdapter

class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)

    def sort(self, key, direction):
        self.docs.sort(key=lambda d: d.get(key), reverse=direction == DESCENDING)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)

class FakeCollection:
    """Just enough of a pymongo collection for the queries the app makes"""

    def __init__(self):
        self.docs = []

    def insert_one(self, doc):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    @staticmethod
    def _matches(doc, query):
        for key, expected in query.items():
            if isinstance(expected, dict) and "$ne" in expected:
                if doc.get(key) == expected["$ne"]:
                    return False
            elif doc.get(key) != expected:
                return False
        return True

    def find_one(self, query):
        return next((dict(d) for d in self.docs if self._matches(d, query)), None)

    def find(self, query=None):
        return FakeCursor(dict(d) for d in self.docs if self._matches(d, query or {}))

class FakeSpeechAdapter(SpeechAdapter):
    """Records what would be played/heard and checks speak/listen exclusion on every step"""

    def __init__(self):
        super().__init__()
        self.spoken = []
        self.events = []

    def _check_exclusive(self):
        assert not (self.is_speaking and self.is_listening)

    async def _play(self, text, message_id):
        self._check_exclusive()
        self.spoken.append(text)
        self.events.append(("speak", text))

    async def _cancel_playback(self, message_id):
        self.events.append(("cancel", message_id))

    async def _begin_recognition(self):
        self._check_exclusive()
        self.events.append(("listen",))

    async def _end_recognition(self):
        self._check_exclusive()
        self.events.append(("stop",))

    async def finish_speaking(self):
        await self.handle_speech_end(self.current_message_id)
        self._check_exclusive()

    async def say(self, text, is_final=True):
        await self.handle_recognition_result(text, is_final)
        self._check_exclusive()

class FakeGateway:
    def __init__(self, response=None, error=None, gate=None):
        self.response = response or GenerationResponse(success=True, interviewId="abc123", questionsCount=5)
        self.error = error
        self.gate = gate
        self.calls = []

    async def generate(self, answers, user_id):
        self.calls.append((answers.model_dump(), user_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response

async def settle(rounds: int = 50):
    """Let scheduled zero-delay steps run"""
    for _ in range(rounds):
        await asyncio.sleep(0)

def fast_timings(no_response_timeout: float = 60.0) -> DialogueTimings:
    return DialogueTimings(
        no_response_timeout=no_response_timeout,
        step_delay=0,
        connect_delay=0,
        navigation_delay=0,
        pre_announcement_grace=0,
        post_announcement_grace=0,
    )

@pytest.fixture
def users_collection():
    return FakeCollection()

@pytest.fixture
def interviews_collection():
    return FakeCollection()
