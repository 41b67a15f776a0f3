# voicetally/__init__.py
from .types import TallyState, TargetWord, DetectionEvent, TallySettings, SessionStatus
from .WordMatcher import WordMatcher
from .HistoryManager import HistoryManager
from .TallyStore import TallyStore
from .RecognitionSession import RecognitionSession

__all__ = [
    'TallyState',
    'TargetWord',
    'DetectionEvent',
    'TallySettings',
    'SessionStatus',
    'WordMatcher',
    'HistoryManager',
    'TallyStore',
    'RecognitionSession'
]
