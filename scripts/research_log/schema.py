"""
Event schemas for the research log.

Defines the event kind descriptor, the recorded event, the correction
classification and the closed set of structured payload values that may
appear as event fields.
"""

import math
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

# Frame keys. These are written to the log and must stay stable.
CURRENT_TIME_KEY = "_ct"
UPTIME_KEY = "_ut"
EVENT_TYPE_KEY = "_ty"
WORD_KEY = "_wo"
CORRECTION_TYPE_KEY = "_corType"
LOG_UNIT_BEGIN_KEY = "logUnitStart"
LOG_UNIT_END_KEY = "logUnitEnd"


class CorrectionType(IntEnum):
    """How the word of a log unit changed after it was first entered."""
    NONE = 0
    CORRECTION = 1
    DIFFERENT_WORD = 2
    TYPO = 3


@dataclass(frozen=True)
class LogStatement:
    """
    Kind of event that can be recorded in a log unit.

    Statements are declared once by the code that records them. The privacy
    flags describe the kind, not an individual occurrence.
    """
    name: str
    keys: Tuple[str, ...] = ()
    is_potentially_private: bool = False
    is_potentially_revealing: bool = False

    def __post_init__(self):
        object.__setattr__(self, "keys", tuple(self.keys))


@dataclass(frozen=True)
class Event:
    """A single occurrence of a log statement."""
    statement: LogStatement
    timestamp: int
    values: Tuple[Any, ...] = ()

    @property
    def name(self) -> str:
        return self.statement.name


class Payload(ABC):
    """Base class for structured field values produced by collaborators."""

    @abstractmethod
    def to_json(self) -> Any:
        """Return the JSON form of this payload."""
        pass


@dataclass(frozen=True)
class KeyInfo:
    code: int
    label: Optional[str] = None
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class KeyPayload(Payload):
    """Keys of the keyboard layout."""
    keys: Tuple[KeyInfo, ...] = ()

    def to_json(self) -> List[Dict[str, Any]]:
        return [
            {
                "code": key.code,
                "altCode": None,
                "label": key.label,
                "x": key.x,
                "y": key.y,
                "width": key.width,
                "height": key.height,
            }
            for key in self.keys
        ]


@dataclass(frozen=True)
class PointerSample:
    pointer_id: int
    x: float
    y: float
    time: int


@dataclass(frozen=True)
class MotionPayload(Payload):
    """A touch motion event and its pointer history."""
    action: str
    event_time: int
    samples: Tuple[PointerSample, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "eventTime": self.event_time,
            "pointers": [
                {"id": s.pointer_id, "x": s.x, "y": s.y, "time": s.time}
                for s in self.samples
            ],
        }


@dataclass(frozen=True)
class CompletionInfo:
    text: str
    label: Optional[str] = None
    position: int = 0


@dataclass(frozen=True)
class CompletionPayload(Payload):
    """Completions offered by the application editor."""
    completions: Tuple[CompletionInfo, ...] = ()

    def to_json(self) -> List[Dict[str, Any]]:
        return [
            {"text": c.text, "label": c.label, "position": c.position}
            for c in self.completions
        ]


@dataclass(frozen=True)
class PreferencesPayload(Payload):
    """Snapshot of user preferences (name -> scalar value)."""
    values: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, prefs: Dict[str, Any]) -> "PreferencesPayload":
        return cls(values=tuple(sorted(prefs.items())))

    def to_json(self) -> Dict[str, Any]:
        return {name: encode_value(value) for name, value in self.values}


def encode_value(value: Any) -> Any:
    """
    Convert a field value to its JSON form.

    Args:
        value: A string, number, boolean, None or Payload

    Returns:
        JSON-compatible value; unsupported types become None
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        # NaN and infinities have no JSON form
        if not math.isfinite(value):
            print(f"Warning: Non-finite number to be logged: {value}", file=sys.stderr)
            return None
        return value
    if isinstance(value, Payload):
        try:
            return value.to_json()
        except Exception as e:
            print(f"Warning: Failed to encode {type(value).__name__}: {e}", file=sys.stderr)
            return None

    print(f"Warning: Unrecognized type to be logged: {type(value).__name__}",
          file=sys.stderr)
    return None
