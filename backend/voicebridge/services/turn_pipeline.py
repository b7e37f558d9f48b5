"""
Turn Pipeline

Server side of a two-turn conversation session:

    transcribe -> translate -> return text to the caller
                            \-> persist turn (background)
                                  \-> (reply turn only) close session,
                                      then daily summary + tagging (background)

Transcription and translation failures go straight back to the caller
and leave no turn row behind. Everything after the translation runs as
detached jobs: a storage hiccup is logged, never shown to the family.
Enrichment is only started once the reply turn's write has been
attempted and both turns are stored.
"""
import asyncio
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .asr_base import ASRService
from .asr_factory import get_asr_service
from .daily_summary import DailySummaryService, daily_summary_service
from .day_window import household_zone, local_today
from .tagging import TaggingService, tagging_service
from .translation import TranslationService, system_prompt_for, translation_service
from ..config import settings
from ..core.errors import HouseholdNotFoundError, InvalidAudioError, SessionClosedError, SessionNotFoundError
from ..core.jobs import BackgroundJobs, jobs
from ..models import ConversationSession, ConversationTurn, Household, SpeakerRole, User

logger = logging.getLogger(__name__)

REPLY_FAMILY_ROLE = "partner"


@dataclass(frozen=True)
class TurnSpec:
    """Fixed shape of one of the two turn slots."""
    turn_index: int
    speaker_role: SpeakerRole
    source_lang: str
    target_lang: str


def first_turn_spec() -> TurnSpec:
    return TurnSpec(0, SpeakerRole.INITIATOR, settings.initiator_lang, settings.reply_lang)


def reply_turn_spec() -> TurnSpec:
    return TurnSpec(1, SpeakerRole.REPLY, settings.reply_lang, settings.initiator_lang)


@dataclass
class TurnOutcome:
    """What the caller gets back as soon as the translation is ready."""
    session_id: str
    household_id: str
    turn_index: int
    speaker_role: SpeakerRole
    source_lang: str
    target_lang: str
    source_text: str
    translated_text: str
    ended_at: dt.datetime
    speaker_user_id: Optional[str] = None
    asr_request_id: Optional[str] = None
    translation_request_id: Optional[str] = None


class TurnPipeline:
    def __init__(
        self,
        asr: Optional[ASRService] = None,
        translator: Optional[TranslationService] = None,
        tagger: Optional[TaggingService] = None,
        summarizer: Optional[DailySummaryService] = None,
        background: Optional[BackgroundJobs] = None,
    ):
        self._asr = asr
        self.translator = translator or translation_service
        self.tagger = tagger or tagging_service
        self.summarizer = summarizer or daily_summary_service
        self.background = background or jobs
        # session id -> pending first-turn write, so the reply job can wait for it
        self._first_turn_writes: Dict[str, asyncio.Task] = {}

    @property
    def asr(self) -> ASRService:
        return self._asr or get_asr_service()

    # ---------- caller-facing operations ----------

    async def start_session(self, household_id, initiator_user_id, context_note: Optional[str] = None) -> ConversationSession:
        """Open a new session; the initiator must belong to the household."""
        household = await Household.get_or_none(id=household_id)
        if not household:
            raise HouseholdNotFoundError("Household not found.")
        initiator = await User.get_or_none(id=initiator_user_id, household_id=household.id)
        if not initiator:
            raise HouseholdNotFoundError("User not found in this household.")

        session = await ConversationSession.create(
            household=household,
            initiated_by_user=initiator,
            started_at=dt.datetime.now(dt.timezone.utc),
            context_note=(context_note or "").strip() or None,
        )
        logger.info("[Session] started %s (household=%s)", session.id, household.id)
        return session

    async def submit_first_turn(self, session_id, audio: bytes, mime_type: str = "audio/webm") -> TurnOutcome:
        session = await self._open_session(session_id)
        outcome = await self._run_turn(session, first_turn_spec(), audio, mime_type,
                                       speaker_user_id=session.initiated_by_user_id)

        key = str(session.id)
        task = self.background.spawn(f"persist-turn:{key}:0", self._persist_turn(outcome))
        self._first_turn_writes[key] = task
        task.add_done_callback(lambda t, key=key: self._drop_first_write(key, t))
        return outcome

    async def submit_reply_turn(self, session_id, audio: bytes, mime_type: str = "audio/webm") -> TurnOutcome:
        session = await self._open_session(session_id)
        speaker = await User.filter(household_id=session.household_id, family_role=REPLY_FAMILY_ROLE).first()
        outcome = await self._run_turn(session, reply_turn_spec(), audio, mime_type,
                                       speaker_user_id=speaker.id if speaker else None)

        self.background.spawn(f"persist-turn:{session.id}:1", self._persist_reply_and_enrich(outcome))
        return outcome

    # ---------- synchronous part: transcribe + translate ----------

    async def _open_session(self, session_id) -> ConversationSession:
        session = await ConversationSession.get_or_none(id=session_id)
        if not session:
            raise SessionNotFoundError()
        if session.ended_at is not None:
            raise SessionClosedError()
        return session

    async def _run_turn(
        self,
        session: ConversationSession,
        spec: TurnSpec,
        audio: bytes,
        mime_type: str,
        speaker_user_id=None,
    ) -> TurnOutcome:
        if not audio:
            raise InvalidAudioError()
        ended_at = dt.datetime.now(dt.timezone.utc)

        transcript = await self.asr.transcribe(audio, language=spec.source_lang, mime_type=mime_type)
        logger.info("[Turn] %s/%d transcribed %d chars (heard %s)", session.id, spec.turn_index,
                    len(transcript.text), transcript.detected_language or "?")

        translation = await self.translator.translate(
            transcript.text,
            spec.source_lang,
            spec.target_lang,
            system_prompt_for(spec.source_lang, spec.target_lang),
        )
        logger.info("[Turn] %s/%d translated %s -> %s", session.id, spec.turn_index,
                    spec.source_lang, spec.target_lang)

        return TurnOutcome(
            session_id=str(session.id),
            household_id=str(session.household_id),
            turn_index=spec.turn_index,
            speaker_role=spec.speaker_role,
            source_lang=spec.source_lang,
            target_lang=spec.target_lang,
            source_text=transcript.text,
            translated_text=translation.translated_text,
            ended_at=ended_at,
            speaker_user_id=str(speaker_user_id) if speaker_user_id else None,
            asr_request_id=transcript.request_id,
            translation_request_id=translation.request_id,
        )

    # ---------- background part ----------

    def _drop_first_write(self, key: str, task: asyncio.Task) -> None:
        if self._first_turn_writes.get(key) is task:
            del self._first_turn_writes[key]

    async def _persist_turn(self, outcome: TurnOutcome) -> bool:
        """Insert one turn; failures (including a taken slot) are logged only."""
        try:
            await ConversationTurn.create(
                session_id=outcome.session_id,
                household_id=outcome.household_id,
                speaker_user_id=outcome.speaker_user_id,
                speaker_role=outcome.speaker_role,
                turn_index=outcome.turn_index,
                ended_at=outcome.ended_at,
                source_lang=outcome.source_lang,
                target_lang=outcome.target_lang,
                source_text=outcome.source_text,
                translated_text=outcome.translated_text,
                asr_request_id=outcome.asr_request_id,
                translation_request_id=outcome.translation_request_id,
            )
        except Exception:
            logger.exception("[Persist] failed to store turn %d of session %s",
                             outcome.turn_index, outcome.session_id)
            return False
        logger.info("[Persist] stored turn %d of session %s", outcome.turn_index, outcome.session_id)
        return True

    async def _persist_reply_and_enrich(self, outcome: TurnOutcome) -> None:
        pending_first = self._first_turn_writes.get(outcome.session_id)
        if pending_first is not None:
            await asyncio.wait({pending_first})

        if not await self._persist_turn(outcome):
            return

        stored = await ConversationTurn.filter(session_id=outcome.session_id).count()
        if stored < 2:
            logger.warning("[Persist] session %s has %d stored turn(s); leaving it open",
                           outcome.session_id, stored)
            return

        await ConversationSession.filter(id=outcome.session_id, ended_at__isnull=True).update(
            ended_at=outcome.ended_at
        )
        self.enrich(outcome.session_id, outcome.household_id)

    def enrich(self, session_id: str, household_id: str) -> None:
        """Fire-and-forget: today's digest and the session's situation tag."""
        self.background.spawn(f"daily-summary:{household_id}", self._refresh_daily_summary(household_id))
        self.background.spawn(f"tag-session:{session_id}", self.tagger.tag_session(session_id))

    async def _refresh_daily_summary(self, household_id: str) -> None:
        household = await Household.get(id=household_id)
        await self.summarizer.summarize(household.id, local_today(household_zone(household)))


# Global singleton
turn_pipeline = TurnPipeline()
