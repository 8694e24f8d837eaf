"""
Log units: groups of related research log events.

A LogUnit collects the events recorded while one word is being composed
(or between two composing regions) together with what is known about that
word. Individual events may be marked potentially private. They are only
published when the caller decides that publishing the whole unit does not
violate the user's privacy; that decision is passed in at publish time.
"""

import json
import sys
import time
from typing import Any, List, Optional, Tuple

from .candidates import CandidateList
from .config import config
from .schema import (
    CORRECTION_TYPE_KEY,
    CURRENT_TIME_KEY,
    EVENT_TYPE_KEY,
    LOG_UNIT_BEGIN_KEY,
    LOG_UNIT_END_KEY,
    UPTIME_KEY,
    WORD_KEY,
    CorrectionType,
    Event,
    LogStatement,
    encode_value,
)
from .sink import EventSink


def current_time_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class LogUnit:
    """
    Time-ordered group of events plus derived word state.

    Events must be added in non-decreasing timestamp order, otherwise
    split_by_time() will not cut where expected. Units are not thread-safe;
    only publish_to() synchronizes, on the sink.
    """

    def __init__(self, events: Optional[List[Event]] = None, is_part_of_mega_unit: bool = False):
        self._events: List[Event] = list(events) if events else []
        # None if the unit does not produce a genuine word
        self._word: Optional[str] = None
        self._may_contain_digit = False
        self._contains_correction = False
        self._is_part_of_mega_unit = is_part_of_mega_unit
        self._correction_type = CorrectionType.NONE
        self._candidates: Optional[CandidateList] = None

    # Events

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    def add_log_statement(self, statement: LogStatement, timestamp: int, *values: Any):
        """
        Record an occurrence of statement at timestamp.

        Args:
            statement: Kind of event
            timestamp: Event time; should not be lower than the previous one
            *values: Field values, one per statement key
        """
        if config.get('research_log.check_timestamps', False) and self._events:
            last = self._events[-1].timestamp
            if timestamp < last:
                print(f"Warning: {statement.name} at {timestamp} added after event at {last}",
                      file=sys.stderr)
        self._events.append(Event(statement, timestamp, tuple(values)))

    def is_empty(self) -> bool:
        return not self._events

    # Word and correction state

    def set_word(self, word: str):
        """
        Mark this unit as generating word.

        If a word was already set, the change is classified: a word found in
        the candidates offered for the first attempt is a typo fix, anything
        else is a different word. Without candidates it is a generic
        correction.
        """
        if self.has_word():
            if self._candidates is not None:
                if self._is_in_candidates(word):
                    self._correction_type = CorrectionType.TYPO
                else:
                    self._correction_type = CorrectionType.DIFFERENT_WORD
            else:
                self._correction_type = CorrectionType.CORRECTION
        self._word = word

    @property
    def word(self) -> Optional[str]:
        return self._word

    def get_word(self) -> Optional[str]:
        return self._word

    def has_word(self) -> bool:
        return self._word is not None and bool(self._word.strip())

    @property
    def correction_type(self) -> CorrectionType:
        return self._correction_type

    def set_correction_type(self, correction_type: CorrectionType):
        self._correction_type = CorrectionType(correction_type)

    def set_may_contain_digit(self):
        self._may_contain_digit = True

    @property
    def may_contain_digit(self) -> bool:
        return self._may_contain_digit

    def set_contains_correction(self):
        self._contains_correction = True

    @property
    def contains_correction(self) -> bool:
        return self._contains_correction

    @property
    def is_part_of_mega_unit(self) -> bool:
        return self._is_part_of_mega_unit

    # Candidates

    @property
    def candidates(self) -> Optional[CandidateList]:
        return self._candidates

    def initialize_candidates(self, candidates: Optional[CandidateList]):
        """
        Freeze the candidates offered for the first attempt at the word.

        Only the first non-None list is kept, so typo classification is
        always made against the user's initial effort.
        """
        if self._candidates is None:
            self._candidates = candidates

    def _is_in_candidates(self, word: str) -> bool:
        if not word:
            return False
        return word in self._candidates

    # Split and merge

    def split_by_time(self, max_time: int) -> "LogUnit":
        """
        Split off all events later than max_time.

        Events at or before max_time stay in this unit. The later events
        move to the returned unit. If no event is later than max_time, an
        empty unit is returned and this unit is unchanged.
        """
        for index, event in enumerate(self._events):
            if event.timestamp > max_time:
                new_unit = LogUnit(self._events[index:], is_part_of_mega_unit=True)
                new_unit._may_contain_digit = self._may_contain_digit
                new_unit._contains_correction = self._contains_correction

                del self._events[index:]
                self._is_part_of_mega_unit = True
                return new_unit
        return LogUnit()

    def append(self, other: "LogUnit"):
        """
        Merge other's events after this unit's events.

        The word is cleared before other's word is applied, so the merge
        never classifies a correction against this unit's previous word.
        """
        self._events.extend(other._events)
        self._word = None
        if other._word is not None:
            self.set_word(other._word)
        self._may_contain_digit = self._may_contain_digit or other._may_contain_digit
        self._contains_correction = self._contains_correction or other._contains_correction
        self._is_part_of_mega_unit = False

    # Publishing

    def publish_to(self, sink: EventSink, can_include_private_data: bool):
        """
        Write every event that passes the privacy filter to sink.

        Nothing is written if all events are filtered out, or if the
        research log is disabled in config. Failures to
        write a frame are reported and skipped.

        Args:
            sink: Shared frame sink
            can_include_private_data: Whether private events and the word
                may be written
        """
        if not config.get('research_log.enabled', True):
            return

        debug = config.get('research_log.debug', False)

        with sink.locked():
            started = False
            for event in self._events:
                statement = event.statement
                if not can_include_private_data and statement.is_potentially_private:
                    continue
                if self._is_part_of_mega_unit and statement.is_potentially_revealing:
                    continue

                if not started:
                    started = True
                    self._write(sink, lambda: self._start_frame(can_include_private_data),
                                "cannot write LogUnitStart", debug)
                self._write(sink, lambda: self._event_frame(event),
                            f"skipping {statement.name}", debug)

            if started:
                self._write(sink, self._end_frame, "cannot write LogUnitEnd", debug)

    def _start_frame(self, can_include_private_data: bool) -> dict:
        frame = {CURRENT_TIME_KEY: current_time_ms()}
        if can_include_private_data:
            frame[WORD_KEY] = self._word
            frame[CORRECTION_TYPE_KEY] = int(self._correction_type)
        frame[EVENT_TYPE_KEY] = LOG_UNIT_BEGIN_KEY
        return frame

    def _end_frame(self) -> dict:
        return {CURRENT_TIME_KEY: current_time_ms(), EVENT_TYPE_KEY: LOG_UNIT_END_KEY}

    def _event_frame(self, event: Event) -> dict:
        keys = event.statement.keys
        values = event.values
        if len(keys) != len(values):
            print(f"Warning: Key and value list sizes do not match for {event.name} "
                  f"({len(keys)} keys, {len(values)} values)", file=sys.stderr)

        frame = {
            CURRENT_TIME_KEY: current_time_ms(),
            UPTIME_KEY: event.timestamp,
            EVENT_TYPE_KEY: event.name,
        }
        for key, value in zip(keys, values):
            frame[key] = encode_value(value)
        return frame

    @staticmethod
    def _write(sink: EventSink, build_frame, failure: str, debug: bool):
        try:
            frame = build_frame()
            sink.write_frame(frame)
        except Exception as e:
            print(f"Warning: Error in research log sink; {failure}: {e}", file=sys.stderr)
            return

        if debug:
            print(json.dumps(frame, indent=2, ensure_ascii=False, default=str), file=sys.stderr)
