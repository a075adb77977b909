"""Unit tests for chord-name voicing."""

import pytest

from songscroller.voicing_strategy import BassTriadVoicer, TriadVoicer, parse_chord_name, pitch_class_to_midi


@pytest.mark.parametrize(
    ("name", "root", "intervals"),
    [
        ("C", 0, (0, 4, 7)),
        ("Am", 9, (0, 3, 7)),
        ("Bb", 10, (0, 4, 7)),
        ("F#m7", 6, (0, 3, 7, 10)),
        ("Cmaj7", 0, (0, 4, 7, 11)),
        ("G7", 7, (0, 4, 7, 10)),
        ("Dsus4", 2, (0, 5, 7)),
        ("Esus2", 4, (0, 2, 7)),
        ("Bdim", 11, (0, 3, 6)),
        ("Caug", 0, (0, 4, 8)),
    ],
)
def test_parse_chord_name(name: str, root: int, intervals: tuple[int, ...]) -> None:
    shape = parse_chord_name(name)
    assert shape is not None
    assert shape.root == root
    assert shape.intervals == intervals
    assert shape.bass == root


def test_parse_chord_name_slash_bass() -> None:
    shape = parse_chord_name("G/B")
    assert shape is not None
    assert (shape.root, shape.bass) == (7, 11)


@pytest.mark.parametrize("name", ["N.C.", "%", "x", ""])
def test_parse_chord_name_rejects_non_chords(name: str) -> None:
    assert parse_chord_name(name) is None


def test_pitch_class_to_midi_middle_c() -> None:
    assert pitch_class_to_midi(0, 4) == 60


def test_triad_voicer() -> None:
    voiced = TriadVoicer().voice("C")
    assert voiced.upper_notes == [60, 64, 67]
    assert voiced.bass_notes == []


def test_bass_triad_voicer_uses_slash_bass() -> None:
    voiced = BassTriadVoicer().voice("G/B")
    assert voiced.upper_notes == [67, 71, 74]
    assert voiced.bass_notes == [47]


def test_voicer_returns_empty_chord_for_unknown_name() -> None:
    voiced = BassTriadVoicer().voice("N.C.")
    assert voiced.name == "N.C."
    assert voiced.upper_notes == []
    assert voiced.bass_notes == []


@pytest.mark.parametrize(("name", "root"), [("B♭", 10), ("F♯m", 6), ("E♮", 4)])
def test_parse_chord_name_reads_typographic_accidentals(name: str, root: int) -> None:
    shape = parse_chord_name(name)
    assert shape is not None
    assert shape.root == root
