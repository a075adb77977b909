"""VoicingStrategy: maps chord names from the sheet to MIDI note sets."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

# ââ MIDI constants ââââââââââââââââââââââââââââââââââââââââââââââââââââââââââ
SEMITONES_PER_OCTAVE = 12

NOTE_OFFSETS: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

_CHORD_NAME_RE = re.compile(r"^([A-G])([#b]?)([^/]*)(?:/([A-G])([#b]?))?$")

# Typographic accidentals as they appear on printed sheets.
ACCIDENTAL_ASCII: dict[str, str] = {"♭": "b", "♯": "#", "♮": ""}


def pitch_class_to_midi(pitch_class: int, octave: int) -> int:
    """
    Convert a pitch class (0-11) and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, C1 = 24, ... C4 (Middle C) = 60.
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + pitch_class


def ascii_chord_name(name: str) -> str:
    """Spell ``♭``/``♯`` as ``b``/``#`` and drop ``♮``."""
    for symbol, ascii_symbol in ACCIDENTAL_ASCII.items():
        name = name.replace(symbol, ascii_symbol)
    return name


def _pitch_class(letter: str, accidental: str) -> int:
    shift = {"#": 1, "b": -1}.get(accidental, 0)
    return (NOTE_OFFSETS[letter] + shift) % SEMITONES_PER_OCTAVE


# ââ Interval tables âââââââââââââââââââââââââââââââââââââââââââââââââââââââââ

MAJOR_INTERVALS: list[int] = [0, 4, 7]
MINOR_INTERVALS: list[int] = [0, 3, 7]
DIMINISHED_INTERVALS: list[int] = [0, 3, 6]
AUGMENTED_INTERVALS: list[int] = [0, 4, 8]
SUS2_INTERVALS: list[int] = [0, 2, 7]
SUS4_INTERVALS: list[int] = [0, 5, 7]


@dataclass(frozen=True)
class ChordShape:
    """
    Pitch content of a chord name.

    Attributes:
        root:      Pitch class of the root (0=C ... 11=B).
        intervals: Semitones above the root, root position.
        bass:      Pitch class of a slash bass, or the root.
    """

    root: int
    intervals: tuple[int, ...]
    bass: int


def parse_chord_name(name: str) -> ChordShape | None:
    """
    Read root, quality and slash bass from a sheet chord name.

    Understands major, ``m``/``min``, ``dim``/``Â°``, ``aug``/``+``, ``sus2``,
    ``sus4`` and a trailing ``7``/``maj7``. Anything after that is ignored.
    Typographic accidentals (``B♭``, ``F♯m``) read like their ASCII spelling.
    Returns None for names that do not start with a note letter (``N.C.``,
    ``%``, ...).
    """
    match = _CHORD_NAME_RE.match(ascii_chord_name(name.strip()))
    if not match:
        return None

    letter, accidental, quality, bass_letter, bass_accidental = match.groups()
    root = _pitch_class(letter, accidental)

    if quality.startswith(("dim", "Â°")):
        intervals = list(DIMINISHED_INTERVALS)
    elif quality.startswith(("aug", "+")):
        intervals = list(AUGMENTED_INTERVALS)
    elif quality.startswith(("m", "min")) and not quality.startswith("maj"):
        intervals = list(MINOR_INTERVALS)
    elif "sus2" in quality:
        intervals = list(SUS2_INTERVALS)
    elif "sus" in quality:
        intervals = list(SUS4_INTERVALS)
    else:
        intervals = list(MAJOR_INTERVALS)

    if "maj7" in quality or "M7" in quality:
        intervals.append(11)
    elif "7" in quality:
        intervals.append(9 if quality.startswith("dim7") else 10)

    bass = _pitch_class(bass_letter, bass_accidental) if bass_letter else root
    return ChordShape(root=root, intervals=tuple(intervals), bass=bass)


@dataclass
class VoicedChord:
    """
    A chord name annotated with concrete MIDI note assignments.

    Attributes:
        name:        Chord name as written on the sheet.
        upper_notes: MIDI notes of the chord body.
        bass_notes:  MIDI notes below the body (may be empty).
    """

    name: str
    upper_notes: list[int] = field(default_factory=list)
    bass_notes: list[int] = field(default_factory=list)


# ââ Abstract base ââââââââââââââââââââââââââââââââââââââââââââââââââââââââââââ

class VoicingStrategy(ABC):
    """Abstract Strategy for assigning MIDI pitches to a chord name."""

    @abstractmethod
    def voice(self, name: str) -> VoicedChord:
        """
        Map a chord name to concrete MIDI notes.

        Unparsable names yield a VoicedChord with no notes.
        """


# ââ Concrete strategies ââââââââââââââââââââââââââââââââââââââââââââââââââââââ

class TriadVoicer(VoicingStrategy):
    """Root-position chord tones in the Middle C octave, no bass."""

    OCTAVE = 4

    def voice(self, name: str) -> VoicedChord:
        shape = parse_chord_name(name)
        if shape is None:
            return VoicedChord(name=name)

        root_midi = pitch_class_to_midi(shape.root, self.OCTAVE)
        return VoicedChord(name=name, upper_notes=[root_midi + iv for iv in shape.intervals])


class BassTriadVoicer(VoicingStrategy):
    """
    Triad in octave 4 plus a single bass note in octave 2.

    Slash chords put their written bass note under the triad.
    """

    UPPER_OCTAVE = 4
    BASS_OCTAVE = 2

    def voice(self, name: str) -> VoicedChord:
        shape = parse_chord_name(name)
        if shape is None:
            return VoicedChord(name=name)

        root_midi = pitch_class_to_midi(shape.root, self.UPPER_OCTAVE)
        return VoicedChord(
            name=name,
            upper_notes=[root_midi + iv for iv in shape.intervals],
            bass_notes=[pitch_class_to_midi(shape.bass, self.BASS_OCTAVE)],
        )
