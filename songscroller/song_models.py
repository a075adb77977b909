"""Data models shared by the parser, the timeline engine and the renderers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property

PLACEHOLDER = "—"

_TIME_SIGNATURE_RE = re.compile(r"^(\d+)\s*/\s*(\d+)$")


@dataclass(frozen=True)
class ChordToken:
    """A chord name with an optional explicit duration in beats."""

    name: str
    duration_beats: float | None = None
    raw: str = ""


@dataclass(frozen=True)
class SegmentRef:
    """
    Structural address of one rendered segment.

    Segment 0 of a block is the lyric prefix; chord ``k`` owns segment ``k + 1``.
    Renderers map these indices onto their own display handles.
    """

    block_index: int
    segment_index: int


@dataclass(frozen=True)
class AlignedSegmentation:
    """Column-aligned chord and lyric segments of one block."""

    column_starts: tuple[int, ...]
    boundaries: tuple[int, ...]
    lyric_segments: tuple[str, ...]
    chord_segments: tuple[str, ...]
    width: int

    @property
    def first_column(self) -> int:
        return self.column_starts[0] if self.column_starts else 0

    @property
    def prefix(self) -> str:
        return self.lyric_segments[0]


@dataclass(frozen=True)
class Block:
    """One chord line and the lyric line written under it."""

    chords_raw: str
    lyrics_raw: str
    chord_tokens: tuple[ChordToken, ...]

    @cached_property
    def aligned(self) -> AlignedSegmentation:
        from songscroller.grid_aligner import align_line

        return align_line(self.chords_raw, self.lyrics_raw)

    @property
    def has_lyrics(self) -> bool:
        return bool(self.lyrics_raw)


@dataclass(frozen=True)
class Event:
    """
    One scheduled chord occurrence on the musical timeline.

    Attributes:
        index:       Global position in parse order.
        block_index: Block that owns the chord.
        chord_index: Position of the chord inside its block.
        chord_name:  Chord name without its duration suffix.
        start_beat:  Musical beat where the chord starts (inclusive).
        end_beat:    Musical beat where the chord ends (exclusive).
        bar_index:   ``floor(start_beat / bar_beats)``.
    """

    index: int
    block_index: int
    chord_index: int
    chord_name: str
    start_beat: float
    end_beat: float
    bar_index: int

    @property
    def duration(self) -> float:
        return self.end_beat - self.start_beat

    @property
    def segment(self) -> SegmentRef:
        return SegmentRef(self.block_index, self.chord_index + 1)


@dataclass(frozen=True)
class CarryLink:
    """
    Highlights another block's lyric prefix during the tail of a source event.

    Both offsets are measured in beats from the start of the source event and
    lie within ``[0, duration]``.
    """

    source_event_index: int
    target_block_index: int
    target_segment: SegmentRef
    start_offset_beats: float
    end_offset_beats: float


@dataclass(frozen=True)
class SongMeta:
    """Front-matter metadata of a song."""

    title: str = ""
    artist: str = ""
    time_signature: str = "4/4"
    capo: str = ""
    bpm: int | None = None

    @property
    def bar_beats(self) -> int:
        """Beats per bar taken from the time-signature numerator (4 if unparsable)."""
        match = _TIME_SIGNATURE_RE.match(self.time_signature.strip())
        if not match:
            return 4
        numerator = int(match.group(1))
        return numerator if numerator > 0 else 4

    def summary(self) -> str:
        bits = [self.title, self.artist, self.time_signature]
        if self.capo:
            bits.append(f"capo {self.capo}")
        return " • ".join(bit for bit in bits if bit) or PLACEHOLDER


@dataclass(frozen=True)
class Song:
    """A parsed song: metadata plus its chord/lyric blocks in order."""

    meta: SongMeta
    blocks: tuple[Block, ...]


@dataclass(frozen=True)
class ClockState:
    """Anchor of the musical clock: ``global_beat`` at a wall time, and the rate."""

    start_wall_time_ms: float
    start_global_beat: float
    bpm: float
