"""Unit tests for the practice MIDI export."""

import pytest

from songscroller.midi_exporter import MidiExporter, marker_text
from songscroller.playback_driver import PlaybackSession, build_session
from songscroller.song_loader import parse_song
from songscroller.voicing_strategy import TriadVoicer


def _sample_session() -> PlaybackSession:
    return build_session(parse_song("---\ntimeSig: 6/8\n---\n[chords]\nC:2 N.C.:0 G:2.5\n[chords]\nAm\n"))


@pytest.mark.parametrize(
    ("time_signature", "expected"),
    [("4/4", 2), ("6/8", 3), ("3/2", 1), ("5/6", 2), ("waltz", 2)],
)
def test_time_signature_denominator(time_signature: str, expected: int) -> None:
    assert MidiExporter()._time_signature_denominator(time_signature) == expected


def test_export_writes_standard_midi_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    out = tmp_path / "practice.mid"
    MidiExporter(tempo=90).export(_sample_session(), str(out))
    data = out.read_bytes()
    assert data.startswith(b"MThd")
    assert data.count(b"MTrk") >= 3


def test_export_embeds_chord_names(tmp_path) -> None:  # type: ignore[no-untyped-def]
    out = tmp_path / "practice.mid"
    MidiExporter(voicer=TriadVoicer(), count_in_bars=0).export(_sample_session(), str(out))
    data = out.read_bytes()
    for name in (b"C", b"N.C.", b"G", b"Am"):
        assert name in data
    assert b"Chords" in data
    assert b"Click" in data


def test_marker_text_spells_typographic_accidentals() -> None:
    assert marker_text("B♭") == "Bb"
    assert marker_text("F♯m7") == "F#m7"
    assert marker_text("C→D") == "C?D"


def test_export_accepts_typographic_accidentals(tmp_path) -> None:  # type: ignore[no-untyped-def]
    out = tmp_path / "practice.mid"
    session = build_session(parse_song("[chords]\nB♭ F♯m\n"))
    MidiExporter(count_in_bars=0).export(session, str(out))
    data = out.read_bytes()
    assert b"Bb" in data
    assert b"F#m" in data
    # Bb triad root (Bb4 = 70) and F#m bass (F#2 = 42) are written as notes.
    assert bytes([0x90, 70]) in data
    assert bytes([0x90, 42]) in data


def test_export_rejects_bar_too_long_for_midi(tmp_path) -> None:  # type: ignore[no-untyped-def]
    out = tmp_path / "practice.mid"
    session = build_session(parse_song("---\ntimeSig: 300/4\n---\n[chords]\nC\n"))
    with pytest.raises(ValueError, match="300/4"):
        MidiExporter().export(session, str(out))
    assert not out.exists()
