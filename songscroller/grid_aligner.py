"""GridAligner: slices a chord line and its lyric line into column-aligned segments."""

import re

from songscroller.song_models import AlignedSegmentation

_TOKEN_RE = re.compile(r"\S+")
_DURATION_SUFFIX_RE = re.compile(r":\d+(?:\.\d+)?")


def _column_starts(chords_raw: str, tokens: list[str]) -> list[int]:
    """
    Locate each token's starting column by scanning left to right.

    The cursor moves past every match, so a token text that repeats on the
    line is found at each of its columns in turn.
    """
    starts: list[int] = []
    cursor = 0
    for token in tokens:
        idx = chords_raw.find(token, cursor)
        if idx >= 0:
            starts.append(idx)
            cursor = idx + len(token)
        else:
            starts.append(cursor)
            cursor += len(token)
    return starts


def _slice(text: str, boundaries: list[int]) -> tuple[str, ...]:
    return tuple(text[a:b] for a, b in zip(boundaries, boundaries[1:]))


def align_line(chords_raw: str, lyrics_raw: str) -> AlignedSegmentation:
    """
    Align a chord line with the lyric line beneath it.

    Alignment is by character column (monospaced semantics). The boundaries
    are ``[0, col(tok0), col(tok1), ..., L]`` with
    ``L = max(len(chords), len(lyrics), first chord column)``; segment 0 is
    the lyric prefix written left of the first chord.

    Chord segments are rebuilt on a blank canvas of width ``L`` so each one
    sits exactly above the lyric segment sharing its time span. Token text
    running past ``L`` is truncated.

    Args:
        chords_raw: Raw chord line, tokens separated by spaces.
        lyrics_raw: Raw lyric line (may be empty).

    Returns:
        AlignedSegmentation with ``token_count + 1`` lyric and chord segments.
    """
    chords_raw = chords_raw or ""
    lyrics_raw = lyrics_raw or ""

    tokens = _TOKEN_RE.findall(chords_raw)
    starts = _column_starts(chords_raw, tokens)

    first_col = starts[0] if starts else 0
    width = max(len(chords_raw), len(lyrics_raw), first_col)
    boundaries = [0, *starts, width]

    lyric_padded = lyrics_raw.ljust(width)

    canvas = [" "] * width
    for token, start in zip(tokens, starts):
        for offset, char in enumerate(token):
            if start + offset >= width:
                break
            canvas[start + offset] = char

    return AlignedSegmentation(
        column_starts=tuple(starts),
        boundaries=tuple(boundaries),
        lyric_segments=_slice(lyric_padded, boundaries),
        chord_segments=_slice("".join(canvas), boundaries),
        width=width,
    )


def strip_durations(segment_text: str) -> str:
    """Blank out ``:N`` duration suffixes, keeping the segment width intact."""
    return _DURATION_SUFFIX_RE.sub(lambda m: " " * len(m.group(0)), segment_text)
