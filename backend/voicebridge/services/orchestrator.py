"""
Session Orchestrator

Device-side state machine for one bridged exchange:

    idle -> capturing-A -> processing-A -> playing-translation-A
         -> capturing-B -> processing-B -> playing-translation-B -> completed

While the first translation is spoken, the recorder for the reply is
opened in parallel, so the partner can answer right away. The reply
recording stops on its own after ``reply_cutoff_sec``.

Any failure drops the session and closes whatever recorder is open. State
goes back to ``idle``, the error stays on ``error`` for the UI, and the
exception is re-raised. A failed session is never resumed; the family
taps record again.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .turn_pipeline import TurnOutcome, TurnPipeline
from ..config import settings
from ..core.errors import BridgeError, InvalidAudioError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    CAPTURING_A = "capturing-A"
    PROCESSING_A = "processing-A"
    PLAYING_TRANSLATION_A = "playing-translation-A"
    CAPTURING_B = "capturing-B"
    PROCESSING_B = "processing-B"
    PLAYING_TRANSLATION_B = "playing-translation-B"
    COMPLETED = "completed"


@dataclass
class CapturedAudio:
    data: bytes
    mime_type: str = "audio/webm"


class Recorder(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> CapturedAudio: ...

    async def close(self) -> None:
        """Release the microphone without producing audio."""
        ...


class SpeechDevice(Protocol):
    """Microphone + speaker of the shared household device."""

    async def open_recorder(self) -> Recorder: ...

    async def speak(self, text: str, language: str) -> None: ...


class InvalidTransitionError(RuntimeError):
    pass


class SessionOrchestrator:
    def __init__(
        self,
        pipeline: TurnPipeline,
        device: SpeechDevice,
        household_id,
        initiator_user_id,
        reply_cutoff_sec: Optional[float] = None,
    ):
        self.pipeline = pipeline
        self.device = device
        self.household_id = household_id
        self.initiator_user_id = initiator_user_id
        self.reply_cutoff_sec = (
            settings.reply_capture_cutoff_sec if reply_cutoff_sec is None else reply_cutoff_sec
        )

        self.state = SessionState.IDLE
        self.error: Optional[BaseException] = None
        self.session_id: Optional[str] = None
        self.first_turn: Optional[TurnOutcome] = None
        self.reply_turn: Optional[TurnOutcome] = None
        self._recorder: Optional[Recorder] = None
        self._cutoff_task: Optional[asyncio.Task] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        if isinstance(self.error, BridgeError):
            return self.error.message
        return BridgeError.default_message

    # ---------- transitions ----------

    def _transition(self, expected: SessionState, new: SessionState) -> None:
        if self.state != expected:
            raise InvalidTransitionError(f"cannot go to {new.value} from {self.state.value}")
        logger.debug("[Orchestrator] %s -> %s", self.state.value, new.value)
        self.state = new

    async def _fail(self, exc: BaseException) -> None:
        logger.warning("[Orchestrator] session %s failed in %s: %s", self.session_id, self.state.value, exc)
        self._cancel_cutoff()
        self.error = exc
        self.state = SessionState.IDLE
        self.session_id = None
        await self._release_recorder()

    def _cancel_cutoff(self) -> None:
        task = self._cutoff_task
        self._cutoff_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _release_recorder(self) -> None:
        recorder, self._recorder = self._recorder, None
        if recorder is not None:
            await _close_quietly(recorder)

    async def reset(self) -> None:
        """Back to idle from any state, forgetting the previous session."""
        self._cancel_cutoff()
        self.state = SessionState.IDLE
        self.error = None
        self.session_id = None
        self.first_turn = None
        self.reply_turn = None
        await self._release_recorder()

    # ---------- operations ----------

    async def start(self, context_note: Optional[str] = None) -> str:
        """Open a session and start capturing the initiator."""
        if self.state == SessionState.COMPLETED:
            await self.reset()
        if self.state != SessionState.IDLE:
            raise InvalidTransitionError(f"session already running ({self.state.value})")
        self.error = None
        self.first_turn = None
        self.reply_turn = None

        try:
            session = await self.pipeline.start_session(self.household_id, self.initiator_user_id, context_note)
            self.session_id = str(session.id)
            self._recorder = await self.device.open_recorder()
            await self._recorder.start()
        except Exception as e:
            await self._fail(e)
            raise
        self._transition(SessionState.IDLE, SessionState.CAPTURING_A)
        return self.session_id

    async def finish_first_turn(self) -> TurnOutcome:
        """Stop capture A, translate it, speak it and start listening for the reply."""
        self._transition(SessionState.CAPTURING_A, SessionState.PROCESSING_A)
        try:
            audio = await self._stop_recorder()
            outcome = await self.pipeline.submit_first_turn(self.session_id, audio.data, audio.mime_type)
            self.first_turn = outcome

            self._transition(SessionState.PROCESSING_A, SessionState.PLAYING_TRANSLATION_A)
            self._recorder = await self._speak_while_opening_recorder(outcome.translated_text, outcome.target_lang)
            await self._recorder.start()
        except Exception as e:
            await self._fail(e)
            raise

        self._transition(SessionState.PLAYING_TRANSLATION_A, SessionState.CAPTURING_B)
        if self.reply_cutoff_sec and self.reply_cutoff_sec > 0:
            self._cutoff_task = asyncio.create_task(self._auto_stop_reply(), name=f"reply-cutoff:{self.session_id}")
        return outcome

    async def finish_reply_turn(self) -> TurnOutcome:
        """Stop capture B, translate it and speak it back."""
        self._transition(SessionState.CAPTURING_B, SessionState.PROCESSING_B)
        self._cancel_cutoff()
        try:
            audio = await self._stop_recorder()
            outcome = await self.pipeline.submit_reply_turn(self.session_id, audio.data, audio.mime_type)
            self.reply_turn = outcome

            self._transition(SessionState.PROCESSING_B, SessionState.PLAYING_TRANSLATION_B)
            await self.device.speak(outcome.translated_text, outcome.target_lang)
        except Exception as e:
            await self._fail(e)
            raise

        self._transition(SessionState.PLAYING_TRANSLATION_B, SessionState.COMPLETED)
        logger.info("[Orchestrator] session %s completed", self.session_id)
        return outcome

    async def wait_until_done(self) -> None:
        """Wait for a pending reply cutoff to fire (used by tests and kiosk mode)."""
        task = self._cutoff_task
        if task is not None:
            await asyncio.wait({task})

    async def _speak_while_opening_recorder(self, text: str, language: str) -> Recorder:
        """
        Play the translation and open the reply recorder at the same time.

        If either side fails the other is cancelled, and a recorder that
        did open is closed before the error propagates.
        """
        speaking = asyncio.ensure_future(self.device.speak(text, language))
        opening = asyncio.ensure_future(self.device.open_recorder())
        try:
            await asyncio.gather(speaking, opening)
        except BaseException:
            for task in (speaking, opening):
                if not task.done():
                    task.cancel()
            await asyncio.gather(speaking, opening, return_exceptions=True)
            if not opening.cancelled() and opening.exception() is None:
                await _close_quietly(opening.result())
            raise
        return opening.result()

    async def _stop_recorder(self) -> CapturedAudio:
        recorder, self._recorder = self._recorder, None
        audio = await recorder.stop()
        if not audio or not audio.data:
            raise InvalidAudioError()
        return audio

    async def _auto_stop_reply(self) -> None:
        await asyncio.sleep(self.reply_cutoff_sec)
        if self.state != SessionState.CAPTURING_B:
            return
        logger.info("[Orchestrator] reply capture reached %ss, stopping", self.reply_cutoff_sec)
        try:
            await self.finish_reply_turn()
        except Exception as e:
            # Already recorded on self.error by finish_reply_turn
            logger.info("[Orchestrator] auto-stopped reply failed: %s", e)


async def _close_quietly(recorder: Recorder) -> None:
    try:
        await recorder.close()
    except Exception:
        logger.exception("[Orchestrator] failed to release recorder")
