"""
Read published log units back from a JSONL research log.
"""

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .schema import EVENT_TYPE_KEY, LOG_UNIT_BEGIN_KEY, LOG_UNIT_END_KEY, WORD_KEY, CORRECTION_TYPE_KEY


@dataclass
class PublishedUnit:
    """Frames of one published log unit."""
    start: Dict
    events: List[Dict] = field(default_factory=list)
    end: Optional[Dict] = None

    @property
    def word(self) -> Optional[str]:
        return self.start.get(WORD_KEY)

    @property
    def correction_type(self) -> Optional[int]:
        return self.start.get(CORRECTION_TYPE_KEY)

    @property
    def complete(self) -> bool:
        return self.end is not None


class ResearchLogReader:
    """Read and regroup research log frames with error handling."""

    @staticmethod
    def read_frames(path: Path) -> List[Dict]:
        """
        Read all frames from a JSONL file.

        Args:
            path: Path to JSONL file

        Returns:
            List of frame dicts (malformed lines are skipped)
        """
        path = Path(path)
        if not path.exists():
            return []

        frames = []
        with open(path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    frame = json.loads(line)
                except json.JSONDecodeError as e:
                    print(f"Warning: Malformed JSON at {path}:{line_num}: {e}",
                          file=sys.stderr)
                    continue
                if not isinstance(frame, dict):
                    print(f"Warning: Frame at {path}:{line_num} is not an object",
                          file=sys.stderr)
                    continue
                frames.append(frame)

        return frames

    @classmethod
    def read_units(cls, path: Path) -> List[PublishedUnit]:
        """
        Group frames into published units.

        Args:
            path: Path to JSONL file

        Returns:
            Units in file order; a unit missing its end frame has end=None
        """
        units = []
        current = None

        for frame in cls.read_frames(path):
            frame_type = frame.get(EVENT_TYPE_KEY)

            if frame_type == LOG_UNIT_BEGIN_KEY:
                if current is not None:
                    print("Warning: logUnitStart before previous unit ended", file=sys.stderr)
                    units.append(current)
                current = PublishedUnit(start=frame)
            elif frame_type == LOG_UNIT_END_KEY:
                if current is None:
                    print("Warning: logUnitEnd without logUnitStart", file=sys.stderr)
                    continue
                current.end = frame
                units.append(current)
                current = None
            elif current is None:
                print(f"Warning: {frame_type} frame outside of a log unit", file=sys.stderr)
            else:
                current.events.append(frame)

        if current is not None:
            print("Warning: Log ends inside an unterminated log unit", file=sys.stderr)
            units.append(current)

        return units
