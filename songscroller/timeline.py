"""TimelineBuilder: turns block chord tokens into a gapless list of timed events."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from songscroller.song_models import Block, Event

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class BarGroup:
    """Inclusive range of adjacent events sharing one bar index."""

    start: int
    end: int
    bar_index: int

    @property
    def indices(self) -> range:
        return range(self.start, self.end + 1)


def build_timeline(blocks: Sequence[Block], bar_beats: int) -> tuple[Event, ...]:
    """
    Schedule every chord of every block on one running beat counter.

    A chord without an explicit duration lasts one bar. Events are contiguous
    across block boundaries: ``events[i].end_beat == events[i + 1].start_beat``.
    Blocks without chords contribute nothing.

    Args:
        blocks:    Parsed blocks in song order.
        bar_beats: Beats per bar (time-signature numerator).

    Returns:
        Tuple of Event objects in parse order.

    Raises:
        ValueError: If ``bar_beats`` is not positive or a token carries a
                    negative duration.
    """
    if bar_beats <= 0:
        raise ValueError(f"bar_beats must be positive, got {bar_beats}.")

    events: list[Event] = []
    beat = 0.0

    for block_index, block in enumerate(blocks):
        for chord_index, token in enumerate(block.chord_tokens):
            duration = token.duration_beats if token.duration_beats is not None else float(bar_beats)
            if duration < 0:
                raise ValueError(f"Negative duration for chord '{token.raw}'.")

            start_beat = beat
            end_beat = beat + duration
            events.append(
                Event(
                    index=len(events),
                    block_index=block_index,
                    chord_index=chord_index,
                    chord_name=token.name,
                    start_beat=start_beat,
                    end_beat=end_beat,
                    bar_index=math.floor(start_beat / bar_beats),
                )
            )
            beat = end_beat

    logger.debug("Built timeline: %d events over %.2f beats", len(events), beat)
    return tuple(events)


def last_event_index_by_block(events: Sequence[Event]) -> dict[int, int]:
    """Map each block index to the index of its final event."""
    last: dict[int, int] = {}
    for event in events:
        last[event.block_index] = event.index
    return last


def bar_group(events: Sequence[Event], index: int) -> BarGroup:
    """Return the maximal run of events around ``index`` sharing its bar index."""
    if not 0 <= index < len(events):
        return BarGroup(start=index, end=index, bar_index=0)

    bar_index = events[index].bar_index

    start = index
    while start > 0 and events[start - 1].bar_index == bar_index:
        start -= 1

    end = index
    while end + 1 < len(events) and events[end + 1].bar_index == bar_index:
        end += 1

    return BarGroup(start=start, end=end, bar_index=bar_index)


def fill_fraction(position: float, start: float, end: float) -> float:
    """
    Progress of ``position`` through ``[start, end)`` clamped to ``[0, 1]``.

    A zero-width span is always fully filled.
    """
    span = end - start
    if span <= 0:
        return 1.0
    return clamp((position - start) / span, 0.0, 1.0)
