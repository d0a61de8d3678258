"""
lingocue - Subtitle-synchronised practice engine for language learners.

Loads SRT/VTT transcripts, follows an audio player's playback time and runs
listening, dictation and shadowing practice over the transcript's sentences.
"""

__version__ = "0.1.0"

from .main import LingocueApp
from .practice import PracticeMode, ShadowingSubmode
from .server import WebServer
from .session import PracticeSession
from .subtitle_parser import CaptionEntry, SubtitleError, parse_subtitle_file

__all__ = [
    "CaptionEntry",
    "SubtitleError",
    "parse_subtitle_file",
    "PracticeMode",
    "ShadowingSubmode",
    "PracticeSession",
    "WebServer",
    "LingocueApp",
]
