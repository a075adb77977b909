"""PlaybackDriver: advances the now-playing position and computes highlight/fill per frame."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from songscroller.carry_resolver import CarryMap, carry_fill, resolve_carries
from songscroller.metronome import BeatTick, BeatTracker, ClickSink, SilentClick
from songscroller.musical_clock import MusicalClock
from songscroller.song_models import PLACEHOLDER, Block, Event, SegmentRef, Song
from songscroller.timeline import bar_group, build_timeline, fill_fraction

logger = logging.getLogger(__name__)


def _perf_ms() -> float:
    return time.perf_counter() * 1000.0


# ── Session ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlaybackSession:
    """Everything derived from one loaded song; replaced as a whole on reload."""

    song: Song
    events: tuple[Event, ...]
    carries: CarryMap

    @property
    def blocks(self) -> tuple[Block, ...]:
        return self.song.blocks

    @property
    def bar_beats(self) -> int:
        return self.song.meta.bar_beats

    @property
    def total_beats(self) -> float:
        return self.events[-1].end_beat if self.events else 0.0


def build_session(song: Song) -> PlaybackSession:
    events = build_timeline(song.blocks, song.meta.bar_beats)
    carries = resolve_carries(song.blocks, events)
    return PlaybackSession(song=song, events=events, carries=carries)


# ── Frame output ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FrameUpdate:
    """
    Everything a renderer needs for one frame.

    Attributes:
        global_beat:         Clock position including the count-in.
        musical_beat:        Clock position relative to the first chord.
        bpm:                 Tempo in effect.
        now_chord:           Name of the current chord, or the placeholder.
        count_in_text:       "Count-in: N beats" during the count-in, else "".
        current_event_index: Pointer position, None during the count-in.
        active_chords:       Chord segments to highlight.
        lyric_fills:         Active lyric segments with their fill in [0, 1].
        current_blocks:      Blocks touched by the bar group or a carry.
        scroll_block:        Block owning the pointer event.
        beat:                Metronome tick emitted on this frame, if any.
        beat_in_bar:         Last metronome position (for beat indicators).
        finished:            True once the last chord has ended.
    """

    global_beat: float = 0.0
    musical_beat: float = 0.0
    bpm: float = MusicalClock.DEFAULT_BPM
    now_chord: str = PLACEHOLDER
    count_in_text: str = ""
    current_event_index: int | None = None
    active_chords: frozenset[SegmentRef] = frozenset()
    lyric_fills: Mapping[SegmentRef, float] = field(default_factory=lambda: MappingProxyType({}))
    current_blocks: frozenset[int] = frozenset()
    scroll_block: int | None = None
    beat: BeatTick | None = None
    beat_in_bar: int = 1
    finished: bool = False

    @property
    def is_count_in(self) -> bool:
        return self.musical_beat < 0

    def is_active(self, ref: SegmentRef) -> bool:
        return ref in self.active_chords or ref in self.lyric_fills

    def fill(self, ref: SegmentRef) -> float:
        return self.lyric_fills.get(ref, 0.0)


def count_in_text(musical_beat: float) -> str:
    if musical_beat >= 0:
        return ""
    beats_left = math.ceil(abs(musical_beat))
    return f"Count-in: {beats_left} beat{'s' if beats_left > 1 else ''}"


# ── Scheduling ────────────────────────────────────────────────────────────────

class TransportState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class FrameScheduler:
    """
    Stand-in for a display-refresh loop.

    An armed callback is called once per frame until it is cancelled; the
    scheduler re-arms it, so stopping is simply not re-arming.
    """

    DEFAULT_FPS = 60.0

    def __init__(self, fps: float = DEFAULT_FPS, sleep: Callable[[float], None] = time.sleep) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}.")
        self.interval = 1.0 / fps
        self._sleep = sleep
        self._callback: Callable[[], object] | None = None

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def arm(self, callback: Callable[[], object]) -> None:
        self._callback = callback

    def cancel(self) -> None:
        self._callback = None

    def run(self, max_frames: int | None = None) -> int:
        """
        Drive frames until cancelled (or ``max_frames`` is reached).

        Returns:
            Number of frames delivered.
        """
        frames = 0
        while self._callback is not None:
            if max_frames is not None and frames >= max_frames:
                break
            self._callback()
            frames += 1
            if self._callback is None:
                break
            self._sleep(self.interval)
        return frames


# ── Driver ────────────────────────────────────────────────────────────────────

class PlaybackDriver:
    """
    Owns the playback session, the musical clock and the event pointer.

    ``tick`` is the only writer of pointer and highlight state. Transport and
    tempo commands are synchronous and may run between two ticks.
    """

    TEMPO_STEP = 2

    def __init__(
        self,
        *,
        bpm: float = MusicalClock.DEFAULT_BPM,
        count_in_bars: int = MusicalClock.DEFAULT_COUNT_IN_BARS,
        now_ms: Callable[[], float] = _perf_ms,
        on_frame: Callable[[FrameUpdate], None] | None = None,
        click_sink: ClickSink | None = None,
        scheduler: FrameScheduler | None = None,
        stop_at_end: bool = False,
    ) -> None:
        """
        Args:
            bpm:           Tempo used when a song does not declare one.
            count_in_bars: Bars of count-in before the first chord.
            now_ms:        Monotonic wall clock in milliseconds.
            on_frame:      Rendering collaborator, called with every FrameUpdate.
            click_sink:    Click collaborator, called on every beat crossing.
            scheduler:     Frame scheduler; a 60 fps one by default.
            stop_at_end:   Pause automatically once the last chord has ended.
        """
        self.count_in_bars = count_in_bars
        self.stop_at_end = stop_at_end
        self._now_ms = now_ms
        self.on_frame = on_frame
        self._click = click_sink or SilentClick()
        self.scheduler = scheduler or FrameScheduler()

        self._session: PlaybackSession | None = None
        self._state = TransportState.STOPPED
        self._pointer = 0
        self.clock = MusicalClock(bpm=bpm, count_in_bars=count_in_bars)
        self.beats = BeatTracker()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session(self) -> PlaybackSession | None:
        return self._session

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is TransportState.RUNNING

    @property
    def current_event_index(self) -> int:
        return self._pointer

    # ------------------------------------------------------------------
    # Song loading
    # ------------------------------------------------------------------

    def load(self, song: Song) -> PlaybackSession:
        """Build a new session for ``song`` and swap it in, stopping playback."""
        session = build_session(song)

        self._stop_scheduling()
        bpm = song.meta.bpm if song.meta.bpm is not None else self.clock.bpm
        self.clock = MusicalClock(bpm=bpm, bar_beats=session.bar_beats, count_in_bars=self.count_in_bars)
        self.beats = BeatTracker(session.bar_beats)
        self._session = session
        logger.debug(
            "Loaded session: %d blocks, %d events, %d carry sources, %d BPM",
            len(session.blocks),
            len(session.events),
            len(session.carries),
            self.clock.bpm,
        )
        self.reset()
        return session

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start playback from the count-in.

        Returns:
            False when nothing was started: already running, or no events.
        """
        if self.is_running:
            return False
        if self._session is None or not self._session.events:
            return False

        self.clock.restart(self._now_ms())
        self._pointer = 0
        self.beats.reset()
        self._state = TransportState.RUNNING
        self.scheduler.arm(self._frame)
        logger.debug("Transport: start at %d BPM", self.clock.bpm)
        return True

    def pause(self) -> None:
        if self.is_running:
            logger.debug("Transport: pause")
        self._stop_scheduling()

    def reset(self) -> FrameUpdate:
        """Stop, rewind to the count-in and emit a blank frame."""
        self._stop_scheduling()
        self.clock.restart(self._now_ms())
        self._pointer = 0
        self.beats.reset()
        frame = FrameUpdate(bpm=self.clock.bpm)
        self._emit(frame)
        return frame

    def set_tempo(self, bpm: float) -> int:
        now = self._now_ms()
        effective = self.clock.set_tempo(bpm, now)
        if self.is_running:
            self._update_metronome(self.clock.global_beat(now))
        return effective

    def adjust_tempo(self, delta: float | None = None) -> int:
        step = self.TEMPO_STEP if delta is None else delta
        return self.set_tempo(self.clock.bpm + step)

    def _stop_scheduling(self) -> None:
        self._state = TransportState.STOPPED
        self.scheduler.cancel()

    # ------------------------------------------------------------------
    # Frame computation
    # ------------------------------------------------------------------

    def _frame(self) -> None:
        frame = self.tick()
        if frame is not None and frame.finished and self.stop_at_end:
            self.pause()

    def _update_metronome(self, global_beat: float) -> BeatTick | None:
        tick = self.beats.update(global_beat)
        if tick is not None:
            self._click.click(tick.beat_in_bar, tick.is_accent)
        return tick

    def _emit(self, frame: FrameUpdate) -> None:
        if self.on_frame is not None:
            self.on_frame(frame)

    def _advance_pointer(self, musical_beat: float, events: tuple[Event, ...]) -> int:
        idx = self._pointer
        while idx < len(events) and musical_beat >= events[idx].end_beat:
            idx += 1
        self._pointer = min(idx, len(events) - 1)
        return self._pointer

    def tick(self) -> FrameUpdate | None:
        """
        Sample the clock and compute one frame.

        Returns None without touching any state while stopped.
        """
        session = self._session
        if not self.is_running or session is None or not session.events:
            return None

        now = self._now_ms()
        global_beat = self.clock.global_beat(now)
        musical_beat = global_beat - self.clock.count_in_beats
        beat = self._update_metronome(global_beat)

        if musical_beat < 0:
            frame = FrameUpdate(
                global_beat=global_beat,
                musical_beat=musical_beat,
                bpm=self.clock.bpm,
                count_in_text=count_in_text(musical_beat),
                beat=beat,
                beat_in_bar=self.beats.last_beat_in_bar,
            )
            self._emit(frame)
            return frame

        events = session.events
        pointer = self._advance_pointer(musical_beat, events)
        current = events[pointer]

        group = bar_group(events, pointer)
        bar_start = group.bar_index * session.bar_beats

        active_chords: set[SegmentRef] = set()
        lyric_fills: dict[SegmentRef, float] = {}
        current_blocks: set[int] = set()

        for idx in group.indices:
            event = events[idx]
            current_blocks.add(event.block_index)
            active_chords.add(event.segment)
            lyric_fills[event.segment] = fill_fraction(
                musical_beat - bar_start,
                event.start_beat - bar_start,
                event.end_beat - bar_start,
            )

            for link in session.carries.get(idx, ()):
                current_blocks.add(link.target_block_index)
                lyric_fills[link.target_segment] = carry_fill(link, event, musical_beat)

        frame = FrameUpdate(
            global_beat=global_beat,
            musical_beat=musical_beat,
            bpm=self.clock.bpm,
            now_chord=current.chord_name or PLACEHOLDER,
            current_event_index=pointer,
            active_chords=frozenset(active_chords),
            lyric_fills=MappingProxyType(lyric_fills),
            current_blocks=frozenset(current_blocks),
            scroll_block=current.block_index,
            beat=beat,
            beat_in_bar=self.beats.last_beat_in_bar,
            finished=musical_beat >= session.total_beats,
        )
        self._emit(frame)
        return frame
