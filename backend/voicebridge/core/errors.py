# voicebridge/core/errors.py
"""
Typed errors for the conversation bridge.

Every error carries a stable ``code`` (rendered to clients), an HTTP
``status_code`` and a human ``message`` that the UI can show as-is.
Errors raised on the live conversation path (capture, transcription,
translation) propagate to the caller; errors on background paths are
caught and logged where they happen.
"""


class BridgeError(Exception):
    """Base class for all errors surfaced by the bridge."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# ---------- user-caused, terminal ----------

class EmptySpeechError(BridgeError):
    code = "EMPTY_SPEECH"
    status_code = 400
    default_message = "No speech detected. Please try speaking again."


class InvalidAudioError(BridgeError):
    code = "INVALID_AUDIO"
    status_code = 400
    default_message = "The recording is empty. Please record again."


class NoConversationsForDateError(BridgeError):
    code = "NO_CONVERSATIONS"
    status_code = 404
    default_message = "No conversations found for this date."


class SessionNotFoundError(BridgeError):
    code = "SESSION_NOT_FOUND"
    status_code = 404
    default_message = "Session not found."


class HouseholdNotFoundError(BridgeError):
    code = "HOUSEHOLD_NOT_FOUND"
    status_code = 404
    default_message = "Household or user not found."


class SessionClosedError(BridgeError):
    code = "SESSION_CLOSED"
    status_code = 409
    default_message = "This conversation has already finished. Please start a new one."


# ---------- provider failures ----------

class ProviderError(BridgeError):
    """
    Raw failure of an upstream AI call (timeout, transport error, non-2xx).

    ``retryable`` marks failures worth a bounded retry (timeouts, network
    errors, 429 and 5xx). ``timed_out`` only changes the message shown.
    """

    code = "PROVIDER_ERROR"
    status_code = 502
    default_message = "The AI service is unavailable right now."

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int | None = None,
        retryable: bool = False,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.status = status
        self.retryable = retryable
        self.timed_out = timed_out


class TranscriptionUnavailableError(BridgeError):
    code = "TRANSCRIPTION_UNAVAILABLE"
    status_code = 503
    default_message = "Speech recognition is unavailable right now. Please try again."

    def __init__(self, message: str | None = None, *, timed_out: bool = False):
        if message is None and timed_out:
            message = "Speech recognition took too long. Please try again."
        super().__init__(message)
        self.timed_out = timed_out


class TranslationUnavailableError(BridgeError):
    code = "TRANSLATION_UNAVAILABLE"
    status_code = 503
    default_message = "Translation is unavailable right now. Please try again."

    def __init__(self, message: str | None = None, *, timed_out: bool = False):
        if message is None and timed_out:
            message = "Translation took too long. Please try again."
        super().__init__(message)
        self.timed_out = timed_out


class TranslationEmptyError(BridgeError):
    code = "TRANSLATION_EMPTY"
    status_code = 502
    default_message = "The translation came back empty. Please try again."


class TranslationCutOffError(TranslationEmptyError):
    """The model hit its output limit before producing any text."""

    code = "TRANSLATION_CUT_OFF"
    default_message = "The translation was cut off. Please try a shorter sentence."


class StructuredOutputError(BridgeError):
    code = "STRUCTURED_OUTPUT_ERROR"
    status_code = 502
    default_message = "The AI response could not be understood."


class InvalidSummaryStructureError(StructuredOutputError):
    code = "INVALID_SUMMARY_STRUCTURE"
    default_message = "The daily summary could not be generated. Please try again."
