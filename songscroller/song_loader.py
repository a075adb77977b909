"""SongLoader: parses song text (front matter + [chords]/[lyrics] sections) into a Song."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from songscroller.chord_tokenizer import tokenize_chords
from songscroller.musical_clock import MusicalClock
from songscroller.song_models import Block, Song, SongMeta

logger = logging.getLogger(__name__)

CHORDS_MARKER = "[chords]"
LYRICS_MARKER = "[lyrics]"
FRONT_MATTER_DELIMITER = "---"

_META_LINE_RE = re.compile(r"^\s*([A-Za-z0-9_]+)\s*:\s*(.+)\s*$")


class SongLoadError(Exception):
    """
    Reading a song source failed.

    Attributes:
        source: The path or identifier that was attempted.
        cause:  The underlying exception.
    """

    def __init__(self, source: str, cause: BaseException) -> None:
        super().__init__(f"Could not load song '{source}': {cause}")
        self.source = source
        self.cause = cause


def parse_front_matter(text: str) -> tuple[dict[str, str], str]:
    """
    Split an optional ``---`` delimited key/value header from the body.

    Without a closing delimiter the whole text is the body and the metadata
    is empty.
    """
    trimmed = text.lstrip()
    if not trimmed.startswith(FRONT_MATTER_DELIMITER):
        return {}, text

    closing = "\n" + FRONT_MATTER_DELIMITER
    end = trimmed.find(closing, len(FRONT_MATTER_DELIMITER))
    if end == -1:
        logger.debug("Front matter has no closing delimiter; treating all text as body")
        return {}, text

    head = trimmed[len(FRONT_MATTER_DELIMITER):end].strip()
    body = trimmed[end + len(closing):].lstrip()

    meta: dict[str, str] = {}
    for line in head.split("\n"):
        match = _META_LINE_RE.match(line)
        if match:
            meta[match.group(1)] = match.group(2).strip()
    return meta, body


def _parse_bpm(value: str | None) -> int | None:
    if not value:
        return None
    match = re.match(r"^\s*([+-]?\d+)", value)
    if not match:
        return None
    return MusicalClock.clamp_bpm(int(match.group(1)))


def build_meta(meta: dict[str, str]) -> SongMeta:
    return SongMeta(
        title=meta.get("title", ""),
        artist=meta.get("artist", ""),
        time_signature=meta.get("timeSig") or meta.get("timesig") or "4/4",
        capo=meta.get("capo", ""),
        bpm=_parse_bpm(meta.get("bpm")),
    )


def parse_blocks(body: str) -> tuple[Block, ...]:
    """
    Collect ``[chords]`` sections, each with an optional ``[lyrics]`` line.

    The line after a marker is taken raw (its spacing is the alignment);
    markers themselves are matched after trimming. Text outside sections
    is ignored.
    """
    lines = re.split(r"\r?\n", body)
    blocks: list[Block] = []

    def line_at(i: int) -> str:
        return lines[i] if i < len(lines) else ""

    i = 0
    while i < len(lines):
        if lines[i].strip() != CHORDS_MARKER:
            i += 1
            continue

        chords_raw = line_at(i + 1)
        i += 2

        lyrics_raw = ""
        if line_at(i).strip() == LYRICS_MARKER:
            lyrics_raw = line_at(i + 1)
            i += 2

        blocks.append(
            Block(
                chords_raw=chords_raw,
                lyrics_raw=lyrics_raw,
                chord_tokens=tokenize_chords(chords_raw),
            )
        )

    return tuple(blocks)


def parse_song(text: str) -> Song:
    meta, body = parse_front_matter(text)
    song = Song(meta=build_meta(meta), blocks=parse_blocks(body))
    logger.debug("Parsed song %r: %d blocks", song.meta.title, len(song.blocks))
    return song


def load_song(path: str | Path) -> Song:
    """
    Read and parse a song file.

    Raises:
        SongLoadError: If the file cannot be read or decoded.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SongLoadError(str(path), exc) from exc
    return parse_song(text)
