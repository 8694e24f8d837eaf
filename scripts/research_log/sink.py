"""
Frame sinks for published log units.

A sink receives the begin / event / end frames of each published log unit.
Sinks are shared between units, so every sink owns a re-entrant lock that a
publisher holds for the whole emission of one unit.
"""

import fcntl
import json
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

from .config import config


class EventSink(ABC):
    """Base class for frame sinks."""

    def __init__(self):
        self._lock = threading.RLock()

    @contextmanager
    def locked(self):
        """Hold exclusive access to the frame channel."""
        with self._lock:
            yield self

    @abstractmethod
    def write_frame(self, frame: Dict):
        """
        Write one frame.

        Args:
            frame: Frame dictionary (keys are written in insertion order)

        Raises:
            Exception: Any failure to accept the frame
        """
        pass

    def flush(self):
        """Flush buffered frames, if any."""

    def close(self):
        """Release resources held by the sink."""
        self.flush()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - flush and close."""
        self.close()


class MemorySink(EventSink):
    """Keeps frames in memory."""

    def __init__(self):
        super().__init__()
        self.frames: List[Dict] = []

    def write_frame(self, frame: Dict):
        self.frames.append(dict(frame))

    def clear(self):
        self.frames.clear()


class JSONLFrameSink(EventSink):
    """
    JSONL file sink with file locking and batching.

    The file is only created once the first frame is flushed, so units
    that publish nothing never touch the disk. Buffered frames are written
    when:
    - Buffer reaches batch_size
    - flush() or close() is called
    """

    def __init__(self, path: Path, batch_size: int = 1):
        """
        Initialize sink.

        Args:
            path: Path to JSONL file
            batch_size: Flush when buffer reaches this size
        """
        super().__init__()
        self.path = Path(path).expanduser()
        self.batch_size = max(1, batch_size)
        self.buffer: List[bytes] = []

    @classmethod
    def from_config(cls, path: Optional[Path] = None) -> "JSONLFrameSink":
        """Create a sink using research_log.* configuration."""
        if path is None:
            path = Path(config.get('research_log.log_path', '~/.research_log/research_log.jsonl'))
        return cls(path, batch_size=config.get('research_log.batch_size', 1))

    def write_frame(self, frame: Dict):
        """
        Add frame to buffer (may trigger flush).

        Serialization happens here, so a frame that cannot be encoded
        (unsupported type, NaN, lone surrogate) raises before it reaches
        the buffer.
        """
        line = json.dumps(frame, ensure_ascii=False, allow_nan=False).encode('utf-8')
        with self._lock:
            self.buffer.append(line)
            if len(self.buffer) >= self.batch_size:
                self.flush()

    def flush(self):
        """
        Append buffered lines to the file under an exclusive lock.

        The buffer is emptied before writing, so a failed flush drops
        its batch instead of retrying it with the next one.
        """
        with self._lock:
            if not self.buffer:
                return

            batch = b''.join(line + b'\n' for line in self.buffer)
            self.buffer.clear()

            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'ab') as f:
                try:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                    f.write(batch)
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
