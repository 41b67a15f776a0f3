"""Exceptions raised across collaborator boundaries."""


class VoiceTallyError(Exception):
    """Base class for voicetally errors."""


class MicrophonePermissionError(VoiceTallyError):
    """Microphone or speech service access was denied. Fatal to a session."""


class SpeechEngineError(VoiceTallyError):
    """The speech engine could not be started."""


class StorageUnavailableError(VoiceTallyError):
    """Persisted state could not be read or written."""
