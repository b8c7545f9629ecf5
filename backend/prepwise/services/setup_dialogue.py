import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

from prepwise.core.config import settings
from prepwise.models.setup import (
    CallStatus,
    DialoguePhase,
    DialogueSnapshot,
    SetupAnswers,
    Speaker,
)
from prepwise.services.generation_gateway import GenerationGateway
from prepwise.services.no_response_timer import NoResponseTimer
from prepwise.services.speech_adapter import SpeechAdapter
from prepwise.services.transcript_log import TranscriptLog

logger = logging.getLogger(__name__)

# Answer key filled by the reply to each setup question; the greeting only confirms readiness
SETUP_KEYS: List[Optional[str]] = [None, "type", "role", "techstack", "level", "amount"]

REASK_PREFIX = "I didn't hear your response. Let me ask again: "
GENERATING_MESSAGE = (
    "Thank you! I'm now generating your interview questions. "
    "Please wait a moment while I prepare everything for you."
)
SUCCESS_MESSAGE = (
    "Perfect! Your interview questions have been generated and saved. "
    "You'll now be redirected to the home page where you can start your actual interview."
)
FAILURE_MESSAGE = "I'm sorry, there was an error generating your interview questions. Please try again."

def build_setup_questions(user_name: str) -> List[str]:
    return [
        f"Hello {user_name}! Let's get you ready for your interview preparation. Are you ready to begin?",
        "What type of interview would you like to prepare for: technical, behavioural, or a mix of both?",
        "Which role or position are you applying for?",
        "What technologies or tech stack will you be working with in this role?",
        "What is the job experience level you are targeting: entry-level, mid-level, or senior?",
        "How many practice questions would you like me to prepare for you?",
    ]

@dataclass
class DialogueTimings:
    """Delays in seconds"""
    no_response_timeout: float = 10.0
    step_delay: float = 0.5
    connect_delay: float = 1.0
    navigation_delay: float = 1.0
    pre_announcement_grace: float = 2.0
    post_announcement_grace: float = 3.0

    @classmethod
    def from_settings(cls) -> "DialogueTimings":
        return cls(
            no_response_timeout=settings.NO_RESPONSE_TIMEOUT,
            step_delay=settings.STEP_DELAY,
            connect_delay=settings.CONNECT_DELAY,
            navigation_delay=settings.NAVIGATION_DELAY,
            pre_announcement_grace=settings.PRE_ANNOUNCEMENT_GRACE,
            post_announcement_grace=settings.POST_ANNOUNCEMENT_GRACE,
        )

@dataclass
class DialogueState:
    phase: DialoguePhase = DialoguePhase.SETUP
    call_status: CallStatus = CallStatus.INACTIVE
    index: int = 0
    answers: SetupAnswers = field(default_factory=SetupAnswers)
    processing: bool = False
    awaiting_answer: bool = False
    generation_started: bool = False

class SetupDialogueController:
    """Runs the spoken setup questions and hands the answers to generation.

    All callbacks run on one event loop. ``state.processing`` is the single
    busy flag shared by the recognition and timer paths: whichever sets state
    first wins and the other event is dropped.
    """

    def __init__(self, adapter: SpeechAdapter, gateway: GenerationGateway,
                 navigate: Callable[[str], Awaitable[None]],
                 user_id: str, user_name: str,
                 timings: Optional[DialogueTimings] = None,
                 on_update: Optional[Callable[[DialogueSnapshot], Awaitable[None]]] = None,
                 landing_route: str = "/",
                 transcript_tail: int = 4):
        self.adapter = adapter
        self.gateway = gateway
        self.navigate = navigate
        self.user_id = user_id
        self.user_name = user_name
        self.timings = timings or DialogueTimings()
        self.on_update = on_update
        self.landing_route = landing_route
        self.transcript_tail = transcript_tail

        self.questions = build_setup_questions(user_name)
        self.state = DialogueState()
        self.transcript = TranscriptLog()
        self.timer = NoResponseTimer(self.re_ask, self.timings.no_response_timeout)

        self._tasks: Set[asyncio.Task] = set()
        self._expect_reply = False
        self._finished = False
        self._navigation_task: Optional[asyncio.Task] = None

        adapter.register(
            on_speech_end=self._on_speech_end,
            on_final_utterance=self.handle_utterance,
            on_error=self._on_recognition_error,
        )

    @property
    def finished(self) -> bool:
        return self._finished

    def snapshot(self) -> DialogueSnapshot:
        return DialogueSnapshot(
            phase=self.state.phase,
            call_status=self.state.call_status,
            is_speaking=self.adapter.is_speaking,
            is_listening=self.adapter.is_listening,
            question_index=self.state.index,
            transcript=self.transcript.recent(self.transcript_tail),
        )

    async def _publish(self) -> None:
        if not self.on_update:
            return
        try:
            await self.on_update(self.snapshot())
        except Exception as e:
            logger.warning(f"⚠️ [SETUP] Could not publish state: {e}")

    def _schedule(self, delay: float, fn, *args, **kwargs) -> asyncio.Task:
        async def run_later():
            await asyncio.sleep(delay)
            try:
                await fn(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"❌ [SETUP] Scheduled step {getattr(fn, '__name__', fn)} failed: {e}")

        task = asyncio.create_task(run_later())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_pending(self) -> None:
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

    # Call lifecycle

    async def start_call(self) -> None:
        if self.state.call_status != CallStatus.INACTIVE:
            logger.info(f"[SETUP] Ignoring call start in status {self.state.call_status.value}")
            return
        self.state.call_status = CallStatus.CONNECTING
        await self._publish()
        self._schedule(self.timings.connect_delay, self._connected)

    async def _connected(self) -> None:
        if self.state.call_status != CallStatus.CONNECTING:
            return
        self.state.call_status = CallStatus.ACTIVE
        await self.start_interview()

    async def start_interview(self) -> None:
        logger.info(f"🎭 [SETUP] Starting setup dialogue for user {self.user_id}")
        self.state.phase = DialoguePhase.SETUP
        self.state.index = 0
        self.state.processing = False
        await self.speak_question(self.questions[0])

    async def disconnect(self) -> None:
        logger.info("🛑 [SETUP] Call ended by user")
        await self.finish(cancel_speech=True)

    async def finish(self, cancel_speech: bool = False) -> None:
        """Move to FINISHED once and navigate to the landing route"""
        if self._finished:
            return
        self._finished = True
        self.state.phase = DialoguePhase.FINISHED
        self.state.call_status = CallStatus.FINISHED
        self.state.awaiting_answer = False
        self.timer.cancel()
        self._cancel_pending()

        if cancel_speech:
            await self.adapter.cancel()
        else:
            await self.adapter.stop_listening()

        await self._publish()
        self._navigation_task = asyncio.create_task(self._navigate_later())

    async def _navigate_later(self) -> None:
        await asyncio.sleep(self.timings.navigation_delay)
        logger.info(f"➡️ [SETUP] Navigating to {self.landing_route}")
        try:
            await self.navigate(self.landing_route)
        except Exception as e:
            logger.warning(f"⚠️ [SETUP] Navigation could not be delivered: {e}")

    async def shutdown(self) -> None:
        """Drop all pending work without talking to the client again"""
        self._finished = True
        self.timer.cancel()
        self._cancel_pending()
        if self._navigation_task and not self._navigation_task.done():
            self._navigation_task.cancel()

    # Speaking and listening

    async def speak_question(self, text: str, record: bool = True, expect_reply: bool = True) -> None:
        if self._finished:
            return
        self.timer.cancel()
        self.state.awaiting_answer = False
        if record:
            self.transcript.append(Speaker.AI, text)
        self._expect_reply = expect_reply
        await self.adapter.speak(text)
        await self._publish()

    async def announce(self, text: str) -> None:
        await self.speak_question(text, record=False, expect_reply=False)

    async def _on_speech_end(self) -> None:
        if (self._expect_reply and not self._finished
                and self.state.phase == DialoguePhase.SETUP):
            self.state.processing = False
            if await self.adapter.start_listening():
                self.state.awaiting_answer = True
                self.timer.arm()
        await self._publish()

    async def handle_utterance(self, text: str) -> None:
        if not text:
            return
        if self.state.processing:
            logger.info(f"[SETUP] Already processing an answer, dropping: {text}")
            return
        if self.state.phase != DialoguePhase.SETUP or self._finished:
            logger.info(f"[SETUP] Not collecting answers in phase {self.state.phase.value}, dropping: {text}")
            return

        self.state.processing = True
        self.state.awaiting_answer = False
        self.timer.cancel()
        await self.adapter.stop_listening()
        self.transcript.append(Speaker.USER, text)
        await self.advance(text)

    async def _on_recognition_error(self, error: str) -> None:
        self.state.processing = False
        await self._publish()

    # State transitions

    async def advance(self, answer: str) -> None:
        if self.state.phase != DialoguePhase.SETUP or self.state.generation_started:
            logger.warning(f"⚠️ [SETUP] advance() ignored in phase {self.state.phase.value}")
            return

        index = self.state.index
        key = SETUP_KEYS[index] if index < len(SETUP_KEYS) else None
        logger.info(f"📝 [SETUP] Answer for question {index} ({key}): {answer}")
        if key:
            setattr(self.state.answers, key, answer)

        self.state.index = index + 1

        if self.state.index < len(self.questions):
            self._schedule(self.timings.step_delay, self.speak_question, self.questions[self.state.index])
        else:
            logger.info(f"✅ [SETUP] All setup answers collected: {self.state.answers.model_dump()}")
            self.state.phase = DialoguePhase.GENERATING
            self.state.generation_started = True
            self._schedule(self.timings.step_delay, self._generate)
        await self._publish()

    async def re_ask(self) -> None:
        """Repeat the current question after a silent listening window"""
        if (self.state.processing or not self.state.awaiting_answer
                or self.state.phase != DialoguePhase.SETUP or self._finished
                or self.state.index >= len(self.questions)):
            logger.info("[TIMER] Not waiting on an answer, skipping re-ask")
            return

        logger.info("🔁 [SETUP] No response detected, re-asking question")
        self.state.awaiting_answer = False
        await self.adapter.stop_listening()
        question = self.questions[self.state.index]
        self._schedule(self.timings.step_delay, self.speak_question, REASK_PREFIX + question, record=False)

    async def _generate(self) -> None:
        self.timer.cancel()
        await self.adapter.stop_listening()
        await self.announce(GENERATING_MESSAGE)

        answers = self.state.answers.model_copy()
        try:
            result = await self.gateway.generate(answers, self.user_id)
            success = result.success
            error = result.error
        except Exception as e:
            success, error = False, str(e)

        if self._finished:
            return

        if success:
            logger.info(f"✅ [GENERATION] Interview {result.interviewId} ready ({result.questionsCount} questions)")
            await asyncio.sleep(self.timings.pre_announcement_grace)
            await self.announce(SUCCESS_MESSAGE)
        else:
            logger.error(f"❌ [GENERATION] Failed to generate interview: {error}")
            await self.announce(FAILURE_MESSAGE)

        await asyncio.sleep(self.timings.post_announcement_grace)
        await self.finish()
