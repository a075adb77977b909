"""Unit tests for beat tracking and click collaborators."""

from songscroller.metronome import BeatTracker, BellClick, RecordingClick


def test_beat_tracker_emits_on_integer_crossing() -> None:
    tracker = BeatTracker(bar_beats=3)
    ticks = [tracker.update(beat) for beat in (0.0, 0.4, 1.0, 2.9, 3.0)]
    assert [t.beat_in_bar if t else None for t in ticks] == [1, None, 2, 3, 1]
    assert [t.is_accent if t else None for t in ticks] == [True, None, False, False, True]


def test_beat_tracker_reset_repeats_current_beat() -> None:
    tracker = BeatTracker()
    assert tracker.update(2.5) is not None
    tracker.reset()
    assert tracker.last_beat_in_bar == 1
    assert tracker.update(2.5) is not None


def test_beat_tracker_notices_backward_jump() -> None:
    tracker = BeatTracker()
    tracker.update(5.0)
    tick = tracker.update(1.0)
    assert tick is not None
    assert tick.beat_in_bar == 2


def test_recording_click_keeps_order() -> None:
    sink = RecordingClick()
    sink.click(1, True)
    sink.click(2, False)
    assert sink.beats == [(1, True), (2, False)]


def test_bell_click_rings_on_accent_only(capsys) -> None:  # type: ignore[no-untyped-def]
    bell = BellClick()
    bell.click(2, False)
    bell.click(1, True)
    assert capsys.readouterr().out == "\a"


def test_bell_click_every_beat(capsys) -> None:  # type: ignore[no-untyped-def]
    bell = BellClick(accent_only=False)
    bell.click(2, False)
    bell.click(3, False)
    assert capsys.readouterr().out == "\a\a"
