"""Unit tests for song text parsing and loading."""

import pytest

from songscroller.song_loader import (
    SongLoadError,
    build_meta,
    load_song,
    parse_blocks,
    parse_front_matter,
    parse_song,
)
from songscroller.song_models import SongMeta

SONG_TEXT = """---
title: Jimmy
artist: Moriarty
timeSig: 3/4
capo: 2
bpm: 96
---

[chords]
C:2     G:1
[lyrics]
Jimmy's gone
[chords]
   Am
[lyrics]
hy there
"""


def test_parse_front_matter_reads_keys() -> None:
    meta, body = parse_front_matter(SONG_TEXT)
    assert meta == {"title": "Jimmy", "artist": "Moriarty", "timeSig": "3/4", "capo": "2", "bpm": "96"}
    assert body.startswith("[chords]")


def test_parse_front_matter_without_header() -> None:
    text = "[chords]\nC\n"
    assert parse_front_matter(text) == ({}, text)


def test_parse_front_matter_without_closing_delimiter() -> None:
    text = "---\ntitle: Broken\n[chords]\nC\n"
    meta, body = parse_front_matter(text)
    assert meta == {}
    assert body == text


def test_unclosed_front_matter_still_parses_blocks() -> None:
    song = parse_song("---\ntitle: Broken\n[chords]\nC G\n")
    assert song.meta.title == ""
    assert len(song.blocks) == 1


def test_parse_front_matter_ignores_malformed_lines() -> None:
    meta, _ = parse_front_matter("---\ntitle: Ok\nnot a pair\n: empty\n---\nbody")
    assert meta == {"title": "Ok"}


def test_build_meta_defaults() -> None:
    meta = build_meta({})
    assert meta == SongMeta()
    assert meta.bar_beats == 4
    assert meta.bpm is None


def test_build_meta_accepts_lowercase_timesig() -> None:
    assert build_meta({"timesig": "6/8"}).bar_beats == 6


def test_build_meta_unparsable_time_signature_falls_back() -> None:
    meta = build_meta({"timeSig": "waltz"})
    assert meta.time_signature == "waltz"
    assert meta.bar_beats == 4


@pytest.mark.parametrize(
    ("raw", "bpm"),
    [("96", 96), ("300", 260), ("12", 30), ("fast", None), ("120 bpm", 120)],
)
def test_build_meta_bpm(raw: str, bpm: int | None) -> None:
    assert build_meta({"bpm": raw}).bpm == bpm


def test_parse_blocks_keeps_raw_spacing() -> None:
    blocks = parse_blocks("[chords]\n   Am  G\n[lyrics]\nhy there you\n")
    assert blocks[0].chords_raw == "   Am  G"
    assert blocks[0].lyrics_raw == "hy there you"
    assert [t.name for t in blocks[0].chord_tokens] == ["Am", "G"]


def test_parse_blocks_missing_lyrics_gives_empty_line() -> None:
    blocks = parse_blocks("[chords]\nC G\n[chords]\nAm\n[lyrics]\nla\n")
    assert [b.lyrics_raw for b in blocks] == ["", "la"]
    assert not blocks[0].has_lyrics


def test_parse_blocks_handles_crlf_and_marker_whitespace() -> None:
    blocks = parse_blocks("  [chords]  \r\nC\r\n[lyrics]\r\nla la\r\n")
    assert blocks[0].chords_raw == "C"
    assert blocks[0].lyrics_raw == "la la"


def test_parse_blocks_ignores_text_outside_sections() -> None:
    blocks = parse_blocks("# Verse\nsome note\n[chords]\nC\n\n(repeat)\n")
    assert len(blocks) == 1


def test_parse_blocks_marker_at_end_of_text() -> None:
    blocks = parse_blocks("[chords]")
    assert len(blocks) == 1
    assert blocks[0].chord_tokens == ()


def test_parse_song_metadata_and_blocks() -> None:
    song = parse_song(SONG_TEXT)
    assert song.meta.title == "Jimmy"
    assert song.meta.bar_beats == 3
    assert song.meta.bpm == 96
    assert len(song.blocks) == 2


def test_meta_summary() -> None:
    meta = parse_song(SONG_TEXT).meta
    assert meta.summary() == "Jimmy • Moriarty • 3/4 • capo 2"


def test_meta_summary_placeholder_when_empty() -> None:
    assert SongMeta(time_signature="").summary() == "—"


def test_load_song_reads_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "jimmy.md"
    path.write_text(SONG_TEXT, encoding="utf-8")
    assert load_song(path) == parse_song(SONG_TEXT)


def test_load_song_reports_source_and_cause(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "nope.md"
    with pytest.raises(SongLoadError) as excinfo:
        load_song(path)
    assert excinfo.value.source == str(path)
    assert isinstance(excinfo.value.cause, OSError)
    assert "nope.md" in str(excinfo.value)
