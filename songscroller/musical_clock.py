"""MusicalClock: maps wall-clock milliseconds to a continuous beat position."""

from __future__ import annotations

import logging

from songscroller.song_models import ClockState
from songscroller.timeline import clamp

logger = logging.getLogger(__name__)


class MusicalClock:
    """
    Piecewise-constant tempo clock.

    ``global_beat`` counts from playback start and includes the count-in;
    ``musical_beat`` subtracts the count-in so the first chord starts at 0.

    The anchor (wall time, beat, bpm) lives in one immutable ``ClockState``
    that is swapped in a single assignment, so a reader never sees a new
    rate paired with an old anchor.
    """

    DEFAULT_BPM = 120
    MIN_BPM = 30
    MAX_BPM = 260
    DEFAULT_COUNT_IN_BARS = 2

    def __init__(
        self,
        bpm: float = DEFAULT_BPM,
        bar_beats: int = 4,
        count_in_bars: int = DEFAULT_COUNT_IN_BARS,
    ) -> None:
        """
        Args:
            bpm:           Initial tempo, clamped to ``[MIN_BPM, MAX_BPM]``.
            bar_beats:     Beats per bar, used to size the count-in.
            count_in_bars: Bars of count-in before musical beat 0.
        """
        self.bar_beats = bar_beats
        self.count_in_bars = count_in_bars
        self._state = ClockState(
            start_wall_time_ms=0.0,
            start_global_beat=0.0,
            bpm=self.clamp_bpm(bpm),
        )

    @classmethod
    def clamp_bpm(cls, bpm: float) -> int:
        return int(clamp(round(bpm), cls.MIN_BPM, cls.MAX_BPM))

    @property
    def state(self) -> ClockState:
        return self._state

    @property
    def bpm(self) -> float:
        return self._state.bpm

    @property
    def count_in_beats(self) -> int:
        return self.count_in_bars * self.bar_beats

    def global_beat(self, now_ms: float) -> float:
        state = self._state
        elapsed_s = (now_ms - state.start_wall_time_ms) / 1000.0
        return state.start_global_beat + elapsed_s * (state.bpm / 60.0)

    def musical_beat(self, now_ms: float) -> float:
        return self.global_beat(now_ms) - self.count_in_beats

    def restart(self, now_ms: float) -> None:
        """Anchor global beat 0 at ``now_ms``; musical time restarts at minus the count-in."""
        self._state = ClockState(
            start_wall_time_ms=now_ms,
            start_global_beat=0.0,
            bpm=self._state.bpm,
        )

    def set_tempo(self, bpm: float, now_ms: float) -> int:
        """
        Change tempo without a jump in beat position.

        The current beat is computed under the old rate and becomes the new
        anchor together with ``now_ms`` and the new rate.

        Returns:
            The effective (rounded and clamped) tempo.
        """
        new_bpm = self.clamp_bpm(bpm)
        if new_bpm == self._state.bpm:
            return new_bpm

        current = self.global_beat(now_ms)
        self._state = ClockState(
            start_wall_time_ms=now_ms,
            start_global_beat=current,
            bpm=new_bpm,
        )
        logger.debug("Tempo -> %d BPM at global beat %.3f", new_bpm, current)
        return new_bpm
