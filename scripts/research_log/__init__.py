"""
Research log package.

Groups related input events into log units, tracks the word each unit
produces and how it was corrected, and publishes units to a frame sink
under a privacy filter.
"""

from .schema import (
    CorrectionType,
    LogStatement,
    Event,
    Payload,
    KeyInfo,
    KeyPayload,
    PointerSample,
    MotionPayload,
    CompletionInfo,
    CompletionPayload,
    PreferencesPayload,
    encode_value
)

from .candidates import CandidateList, LexiconSuggester
from .log_unit import LogUnit
from .sink import EventSink, MemorySink, JSONLFrameSink
from .reader import ResearchLogReader, PublishedUnit
from .config import ResearchLogConfig, config

__all__ = [
    # Schemas
    'CorrectionType',
    'LogStatement',
    'Event',
    'Payload',
    'KeyInfo',
    'KeyPayload',
    'PointerSample',
    'MotionPayload',
    'CompletionInfo',
    'CompletionPayload',
    'PreferencesPayload',
    'encode_value',
    # Units
    'CandidateList',
    'LexiconSuggester',
    'LogUnit',
    # Sinks
    'EventSink',
    'MemorySink',
    'JSONLFrameSink',
    'ResearchLogReader',
    'PublishedUnit',
    # Config
    'ResearchLogConfig',
    'config',
]

__version__ = '1.0.0'
