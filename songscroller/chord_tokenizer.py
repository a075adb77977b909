"""ChordTokenizer: splits a chord line into named tokens with optional beat durations."""

import re

from songscroller.song_models import ChordToken

# Lazy name so "A:B:2" keeps "A:B" as the name and 2 as the duration.
_TOKEN_WITH_DURATION_RE = re.compile(r"^(.+?):(\d+(?:\.\d+)?)$")


def parse_token(raw: str) -> ChordToken:
    """
    Parse ``NAME:DURATION`` or a bare ``NAME``.

    Any non-whitespace text is a legal chord name. A suffix that is not a
    non-negative decimal stays part of the name and the duration is ``None``.
    """
    match = _TOKEN_WITH_DURATION_RE.match(raw)
    if match:
        return ChordToken(name=match.group(1), duration_beats=float(match.group(2)), raw=raw)
    return ChordToken(name=raw, duration_beats=None, raw=raw)


def tokenize_chords(chords_raw: str) -> tuple[ChordToken, ...]:
    """Tokenize a raw chord line on whitespace, in column order."""
    return tuple(parse_token(raw) for raw in (chords_raw or "").split())
