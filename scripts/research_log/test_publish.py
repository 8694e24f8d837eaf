#!/usr/bin/env python3
"""
Tests for publishing log units to a sink.

Tests privacy filtering, frame layout, sink failures and concurrent
publishing to a shared sink.
"""

import sys
import threading
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from research_log.candidates import CandidateList
from research_log.config import config
from research_log.log_unit import LogUnit
from research_log.schema import (
    CompletionInfo,
    CompletionPayload,
    CorrectionType,
    KeyInfo,
    KeyPayload,
    LogStatement,
    MotionPayload,
    Payload,
    PointerSample,
)
from research_log.sink import EventSink, MemorySink

PUBLIC = LogStatement("onStartInputView", ("packageName",))
PRIVATE = LogStatement("commitText", ("text",), is_potentially_private=True)
REVEALING = LogStatement("suggestionPicked", ("word",), is_potentially_revealing=True)


class FailingSink(MemorySink):
    """Memory sink that rejects frames of the given event types."""

    def __init__(self, failing_types):
        super().__init__()
        self.failing_types = set(failing_types)

    def write_frame(self, frame):
        if frame["_ty"] in self.failing_types:
            raise IOError(f"disk full writing {frame['_ty']}")
        super().write_frame(frame)


def frame_types(sink):
    return [f["_ty"] for f in sink.frames]


def test_private_events_filtered():
    """Private events are dropped when private data is excluded."""
    print("Testing private event filtering...")

    unit = LogUnit()
    unit.add_log_statement(PRIVATE, 1, "secret")
    unit.add_log_statement(PUBLIC, 2, "com.example")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=False)

    assert frame_types(sink) == ["logUnitStart", "onStartInputView", "logUnitEnd"]
    assert sink.frames[1]["packageName"] == "com.example"

    print("✓ Private event filtering test passed")


def test_private_events_included():
    """Private events are written when allowed."""
    print("Testing private event inclusion...")

    unit = LogUnit()
    unit.add_log_statement(PRIVATE, 1, "secret")
    unit.add_log_statement(PUBLIC, 2, "com.example")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)

    assert frame_types(sink) == ["logUnitStart", "commitText", "onStartInputView", "logUnitEnd"]
    assert sink.frames[1]["text"] == "secret"

    print("✓ Private event inclusion test passed")


def test_fully_filtered_unit_writes_nothing():
    """No begin/end pair for a unit whose events are all filtered."""
    print("Testing fully filtered unit...")

    unit = LogUnit()
    unit.add_log_statement(PRIVATE, 1, "a")
    unit.add_log_statement(PRIVATE, 2, "b")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=False)
    assert sink.frames == []

    LogUnit().publish_to(sink, can_include_private_data=True)
    assert sink.frames == []

    print("✓ Fully filtered unit test passed")


def test_revealing_events_dropped_for_mega_units():
    """Revealing events are only dropped from split fragments."""
    print("Testing revealing event filtering...")

    unit = LogUnit()
    unit.add_log_statement(REVEALING, 1, "cat")
    unit.add_log_statement(PUBLIC, 2, "com.example")
    unit.add_log_statement(REVEALING, 3, "dog")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)
    assert frame_types(sink).count("suggestionPicked") == 2

    later = unit.split_by_time(2)
    sink.clear()
    unit.publish_to(sink, can_include_private_data=True)
    assert frame_types(sink) == ["logUnitStart", "onStartInputView", "logUnitEnd"]

    sink.clear()
    later.publish_to(sink, can_include_private_data=True)
    assert sink.frames == []

    print("✓ Revealing event filtering test passed")


def test_begin_frame_contents():
    """Word and correction type only appear when private data is allowed."""
    print("Testing begin frame contents...")

    unit = LogUnit()
    unit.initialize_candidates(CandidateList(["cat", "hat"]))
    unit.set_word("cat")
    unit.set_word("hat")
    unit.add_log_statement(PUBLIC, 7, "com.example")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)
    start = sink.frames[0]
    assert list(start.keys()) == ["_ct", "_wo", "_corType", "_ty"]
    assert start["_wo"] == "hat"
    assert start["_corType"] == int(CorrectionType.TYPO) == 3
    assert isinstance(start["_ct"], int)

    sink.clear()
    unit.publish_to(sink, can_include_private_data=False)
    start = sink.frames[0]
    assert list(start.keys()) == ["_ct", "_ty"]

    print("✓ Begin frame contents test passed")


def test_event_frame_layout():
    """Event frames carry both clocks, the type and encoded fields."""
    print("Testing event frame layout...")

    statement = LogStatement("onTouch", ("keys", "motion", "ratio", "shift", "extra"))
    keys = KeyPayload((KeyInfo(code=97, label="a", x=1, y=2, width=10, height=20),))
    motion = MotionPayload("down", 100, (PointerSample(0, 1.5, 2.5, 100),))

    unit = LogUnit()
    unit.add_log_statement(statement, 42, keys, motion, 0.5, True, None)

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)
    frame = sink.frames[1]

    assert list(frame.keys())[:3] == ["_ct", "_ut", "_ty"]
    assert frame["_ut"] == 42
    assert frame["_ty"] == "onTouch"
    assert frame["keys"][0]["code"] == 97
    assert frame["motion"]["pointers"][0]["x"] == 1.5
    assert frame["ratio"] == 0.5
    assert frame["shift"] is True
    assert frame["extra"] is None
    assert sink.frames[2] == {"_ct": sink.frames[2]["_ct"], "_ty": "logUnitEnd"}

    print("✓ Event frame layout test passed")


def test_arity_mismatch_uses_shorter_length():
    """Mismatched keys and values are written up to the shorter list."""
    print("Testing key/value mismatch...")

    statement = LogStatement("pair", ("a", "b"))
    unit = LogUnit()
    unit.add_log_statement(statement, 1, "x")
    unit.add_log_statement(statement, 2, "x", "y", "z")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)

    first, second = sink.frames[1], sink.frames[2]
    assert "a" in first and "b" not in first
    assert first["a"] == "x"
    assert second["a"] == "x" and second["b"] == "y"
    assert len(second) == 5

    print("✓ Key/value mismatch test passed")


def test_failing_payload_written_as_null():
    """A payload that fails to encode does not escape publish."""
    print("Testing failing payload...")

    class BrokenPayload(Payload):
        def to_json(self):
            raise NotImplementedError("no JSON form")

    statement = LogStatement("odd", ("value", "other"))
    unit = LogUnit()
    unit.add_log_statement(statement, 1, BrokenPayload(), "kept")
    unit.add_log_statement(PUBLIC, 2, "com.example")

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)

    assert frame_types(sink) == ["logUnitStart", "odd", "onStartInputView", "logUnitEnd"]
    assert sink.frames[1]["value"] is None
    assert sink.frames[1]["other"] == "kept"

    print("✓ Failing payload test passed")


def test_non_finite_numbers_written_as_null():
    """NaN and infinities have no JSON form and become null."""
    print("Testing non-finite numbers...")

    statement = LogStatement("ratios", ("nan", "inf", "ninf", "ok"))
    unit = LogUnit()
    unit.add_log_statement(statement, 1, float("nan"), float("inf"), float("-inf"), 1.5)

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)

    frame = sink.frames[1]
    assert frame["nan"] is None
    assert frame["inf"] is None
    assert frame["ninf"] is None
    assert frame["ok"] == 1.5

    print("✓ Non-finite number test passed")


def test_completion_payload():
    """Editor completions are written as a list of records."""
    print("Testing completion payload...")

    statement = LogStatement("displayCompletions", ("completions",))
    completions = CompletionPayload((
        CompletionInfo("hello", label="Hello", position=0),
        CompletionInfo("help", position=1),
    ))
    unit = LogUnit()
    unit.add_log_statement(statement, 1, completions)

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)

    assert sink.frames[1]["completions"] == [
        {"text": "hello", "label": "Hello", "position": 0},
        {"text": "help", "label": None, "position": 1},
    ]

    print("✓ Completion payload test passed")


def test_explicit_correction_type():
    """An explicitly set correction type is written in the begin frame."""
    print("Testing explicit correction type...")

    unit = LogUnit()
    unit.set_word("cat")
    unit.set_correction_type(2)
    assert unit.correction_type is CorrectionType.DIFFERENT_WORD

    unit.set_correction_type(CorrectionType.NONE)
    assert unit.correction_type is CorrectionType.NONE
    unit.set_correction_type(CorrectionType.TYPO)

    unit.add_log_statement(PUBLIC, 1, "com.example")
    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)
    assert sink.frames[0]["_corType"] == 3

    try:
        unit.set_correction_type(7)
    except ValueError:
        pass
    else:
        raise AssertionError("Out of range correction type should be rejected")
    assert unit.correction_type is CorrectionType.TYPO

    print("✓ Explicit correction type test passed")


def test_unrecognized_value_written_as_null():
    """Unsupported value types become null."""
    print("Testing unrecognized value types...")

    statement = LogStatement("odd", ("value",))
    unit = LogUnit()
    unit.add_log_statement(statement, 1, object())

    sink = MemorySink()
    unit.publish_to(sink, can_include_private_data=True)
    assert sink.frames[1]["value"] is None

    print("✓ Unrecognized value test passed")


def test_sink_failure_does_not_abort_publish():
    """A rejected frame is skipped and the rest of the unit is written."""
    print("Testing sink failure handling...")

    unit = LogUnit()
    unit.add_log_statement(PRIVATE, 1, "a")
    unit.add_log_statement(PUBLIC, 2, "b")
    unit.add_log_statement(PRIVATE, 3, "c")

    sink = FailingSink(["onStartInputView"])
    unit.publish_to(sink, can_include_private_data=True)
    assert frame_types(sink) == ["logUnitStart", "commitText", "commitText", "logUnitEnd"]

    sink = FailingSink(["logUnitStart"])
    unit.publish_to(sink, can_include_private_data=True)
    assert frame_types(sink) == ["commitText", "onStartInputView", "commitText", "logUnitEnd"]

    print("✓ Sink failure test passed")


def test_lock_released_after_failure():
    """The sink lock is free again after a failing publish."""
    print("Testing lock release...")

    unit = LogUnit()
    unit.add_log_statement(PUBLIC, 1, "a")

    sink = FailingSink(["logUnitStart", "onStartInputView", "logUnitEnd"])
    unit.publish_to(sink, can_include_private_data=True)

    acquired = []

    def grab():
        acquired.append(sink._lock.acquire(timeout=1))
        if acquired[-1]:
            sink._lock.release()

    thread = threading.Thread(target=grab)
    thread.start()
    thread.join()
    assert acquired == [True]

    print("✓ Lock release test passed")


def test_concurrent_publish_does_not_interleave():
    """Units published from several threads keep their frames together."""
    print("Testing concurrent publishing...")

    class SlowSink(MemorySink):
        def write_frame(self, frame):
            # Give other threads a chance to run between frames
            threading.Event().wait(0.001)
            super().write_frame(frame)

    sink = SlowSink()
    units = []
    for n in range(8):
        unit = LogUnit()
        for i in range(5):
            unit.add_log_statement(PUBLIC, i, f"unit{n}")
        units.append(unit)

    threads = [
        threading.Thread(target=u.publish_to, args=(sink, True)) for u in units
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(sink.frames) == 8 * 7
    for start in range(0, len(sink.frames), 7):
        block = sink.frames[start:start + 7]
        assert block[0]["_ty"] == "logUnitStart"
        assert block[-1]["_ty"] == "logUnitEnd"
        assert len({f["packageName"] for f in block[1:-1]}) == 1

    print("✓ Concurrent publishing test passed")


def test_debug_echo():
    """Debug mode echoes frames without changing what is written."""
    print("Testing debug echo...")

    config.set('research_log.debug', True)
    try:
        unit = LogUnit()
        unit.add_log_statement(PUBLIC, 1, "com.example")
        sink = MemorySink()
        unit.publish_to(sink, can_include_private_data=False)
        assert frame_types(sink) == ["logUnitStart", "onStartInputView", "logUnitEnd"]
    finally:
        config.set('research_log.debug', False)

    print("✓ Debug echo test passed")


def test_custom_sink_subclass():
    """Any EventSink subclass can receive frames."""
    print("Testing custom sink...")

    class CountingSink(EventSink):
        def __init__(self):
            super().__init__()
            self.count = 0

        def write_frame(self, frame):
            self.count += 1

    unit = LogUnit()
    unit.add_log_statement(PUBLIC, 1, "a")
    unit.add_log_statement(PUBLIC, 2, "b")

    sink = CountingSink()
    unit.publish_to(sink, can_include_private_data=True)
    assert sink.count == 4

    print("✓ Custom sink test passed")


def run_all_tests():
    """Run all publish tests."""
    print("=" * 60)
    print("Running Log Unit Publish Tests")
    print("=" * 60 + "\n")

    tests = [
        test_private_events_filtered,
        test_private_events_included,
        test_fully_filtered_unit_writes_nothing,
        test_revealing_events_dropped_for_mega_units,
        test_begin_frame_contents,
        test_event_frame_layout,
        test_arity_mismatch_uses_shorter_length,
        test_unrecognized_value_written_as_null,
        test_failing_payload_written_as_null,
        test_non_finite_numbers_written_as_null,
        test_completion_payload,
        test_explicit_correction_type,
        test_sink_failure_does_not_abort_publish,
        test_lock_released_after_failure,
        test_concurrent_publish_does_not_interleave,
        test_debug_echo,
        test_custom_sink_subclass,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
            print()
        except AssertionError as e:
            print(f"✗ Test failed: {e}")
            failed += 1
            print()
        except Exception as e:
            print(f"✗ Test error: {e}")
            failed += 1
            print()

    print("=" * 60)
    print(f"Tests: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
