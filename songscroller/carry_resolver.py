"""CarryResolver: links a line's lyric prefix to the last chord of the previous line."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from types import MappingProxyType

from songscroller.song_models import Block, CarryLink, Event, SegmentRef
from songscroller.timeline import clamp, last_event_index_by_block

logger = logging.getLogger(__name__)


class CarryMap(Mapping[int, tuple[CarryLink, ...]]):
    """
    Read-only mapping of source event index to the carry links it drives.

    Several links may share a source event; all of them apply independently.
    """

    def __init__(self, links: Sequence[CarryLink] = ()) -> None:
        grouped: dict[int, list[CarryLink]] = {}
        for link in links:
            grouped.setdefault(link.source_event_index, []).append(link)
        self._links = MappingProxyType({k: tuple(v) for k, v in grouped.items()})

    def __getitem__(self, event_index: int) -> tuple[CarryLink, ...]:
        return self._links[event_index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._links)

    def __len__(self) -> int:
        return len(self._links)

    def links(self) -> list[CarryLink]:
        return [link for group in self._links.values() for link in group]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CarryMap):
            return dict(self._links) == dict(other._links)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._links.items()))

    def __repr__(self) -> str:
        return f"CarryMap({dict(self._links)!r})"


def split_offsets(duration: float, previous_text: str, prefix_text: str) -> tuple[float, float]:
    """
    Decide where, inside the previous line's last chord, the carried prefix plays.

    When the previous line still sings under its last chord, the chord is
    shared by character count: previous text first, then the prefix. When it
    is silent there, the prefix takes the second half.

    Returns:
        ``(start_offset, end_offset)`` in beats from the chord start. The end
        offset is always ``duration``.
    """
    previous_len = len(previous_text.strip())
    prefix_len = len(prefix_text.strip())

    if previous_len > 0:
        total = max(1, previous_len + prefix_len)
        return duration * (previous_len / total), duration
    return duration * 0.5, duration


def resolve_carries(blocks: Sequence[Block], events: Sequence[Event]) -> CarryMap:
    """
    Build the carry map for a song.

    A block ``i >= 1`` whose first chord is not in column 0 and whose lyric
    prefix is not blank carries that prefix into the final event of block
    ``i - 1``. Blocks whose predecessor has no events are skipped.

    Args:
        blocks: Parsed blocks in song order.
        events: Timeline built from the same blocks.

    Returns:
        CarryMap keyed by the source (previous-line final) event index.
    """
    if not events:
        return CarryMap()

    last_by_block = last_event_index_by_block(events)
    links: list[CarryLink] = []

    for block_index in range(1, len(blocks)):
        aligned = blocks[block_index].aligned
        if not aligned.column_starts or aligned.first_column <= 0:
            continue

        prefix = aligned.prefix.strip()
        if not prefix:
            continue

        source_index = last_by_block.get(block_index - 1)
        if source_index is None:
            continue

        source = events[source_index]
        previous = blocks[block_index - 1]
        previous_segment = previous.aligned.lyric_segments[len(previous.chord_tokens)]

        start, end = split_offsets(source.duration, previous_segment, prefix)
        links.append(
            CarryLink(
                source_event_index=source_index,
                target_block_index=block_index,
                target_segment=SegmentRef(block_index, 0),
                start_offset_beats=start,
                end_offset_beats=end,
            )
        )
        logger.debug(
            "Carry: block %d prefix %r rides event %d from +%.3f to +%.3f beats",
            block_index,
            prefix,
            source_index,
            start,
            end,
        )

    return CarryMap(links)


def carry_fill(link: CarryLink, event: Event, musical_beat: float) -> float:
    """Fill fraction of a carried prefix while its source event plays."""
    t_in_event = clamp(musical_beat - event.start_beat, 0.0, event.duration)
    window = link.end_offset_beats - link.start_offset_beats
    if window <= 0:
        return 1.0 if t_in_event >= link.start_offset_beats else 0.0
    return clamp((t_in_event - link.start_offset_beats) / window, 0.0, 1.0)
