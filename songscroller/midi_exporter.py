"""MidiExporter: writes a song's chord timeline and metronome to a practice MIDI file."""

from __future__ import annotations

import logging
import math

from midiutil import MIDIFile

from songscroller.playback_driver import PlaybackSession
from songscroller.voicing_strategy import BassTriadVoicer, VoicingStrategy, ascii_chord_name

logger = logging.getLogger(__name__)

# In midiutil Format 1 MIDI, track 0 is the conductor/tempo track.
TRACK_CONDUCTOR = 0  # Tempo, time signature and chord-name text
TRACK_CHORDS = 1
TRACK_CLICK = 2

CHANNEL_CHORDS = 0
CHANNEL_CLICK = 9  # General MIDI percussion

CLICK_ACCENT_NOTE = 76  # Hi Wood Block
CLICK_NOTE = 77         # Low Wood Block

MAX_TIME_SIGNATURE_NUMERATOR = 255  # Stored in a single byte


def marker_text(chord_name: str) -> str:
    """Chord name as a MIDI text event can hold it (latin-1, unknown characters as "?")."""
    return ascii_chord_name(chord_name).encode("latin-1", "replace").decode("latin-1")


class MidiExporter:
    """
    Writes a three-track MIDI file from a playback session.

    Track 0 — conductor: tempo, time signature and one text event per chord.
    Track 1 — chords voiced by a VoicingStrategy, one note group per event.
    Track 2 — metronome clicks for the count-in and the whole song, with the
              first beat of each bar accented.

    Timing
    ------
    One beat of the timeline is written as one quarter note. Chords are
    shifted right by the count-in so the file starts with the clicks alone.
    """

    DEFAULT_TEMPO = 120
    DEFAULT_VELOCITY = 80
    BASS_VELOCITY = 68
    CLICK_VELOCITY = 90
    CLICK_ACCENT_VELOCITY = 120
    CLICK_LENGTH = 0.25

    def __init__(
        self,
        tempo: int = DEFAULT_TEMPO,
        count_in_bars: int = 2,
        voicer: VoicingStrategy | None = None,
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        """
        Args:
            tempo:         Playback tempo in beats per minute.
            count_in_bars: Bars of clicks before the first chord.
            voicer:        Chord-name to MIDI strategy; bass + triad by default.
            velocity:      Note-on velocity of the chord body.
        """
        self.tempo = tempo
        self.count_in_bars = count_in_bars
        self.voicer = voicer or BassTriadVoicer()
        self.velocity = velocity

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _time_signature_denominator(self, time_signature: str) -> int:
        """Return log2 of the written denominator, as MIDI stores it (quarter = 2)."""
        try:
            denominator = int(time_signature.split("/", maxsplit=1)[1])
        except (IndexError, ValueError):
            return 2
        if denominator <= 0 or denominator & (denominator - 1):
            return 2
        return int(math.log2(denominator))

    def _build_midi(self, session: PlaybackSession) -> MIDIFile:
        bar_beats = session.bar_beats
        if bar_beats > MAX_TIME_SIGNATURE_NUMERATOR:
            raise ValueError(
                f"Time signature '{session.song.meta.time_signature}' has more than "
                f"{MAX_TIME_SIGNATURE_NUMERATOR} beats per bar, which MIDI cannot store."
            )
        offset = self.count_in_bars * bar_beats

        midi = MIDIFile(numTracks=3, removeDuplicates=False, deinterleave=False)
        midi.addTempo(TRACK_CONDUCTOR, 0, self.tempo)
        midi.addTimeSignature(
            TRACK_CONDUCTOR,
            0,
            bar_beats,
            self._time_signature_denominator(session.song.meta.time_signature),
            24,
        )
        midi.addTrackName(TRACK_CHORDS, 0, "Chords")
        midi.addTrackName(TRACK_CLICK, 0, "Click")

        for event in session.events:
            start = offset + event.start_beat
            midi.addText(TRACK_CONDUCTOR, start, marker_text(event.chord_name))
            if event.duration <= 0:
                continue

            voiced = self.voicer.voice(event.chord_name)
            for pitch in voiced.bass_notes:
                midi.addNote(TRACK_CHORDS, CHANNEL_CHORDS, pitch, start, event.duration, self.BASS_VELOCITY)
            for pitch in voiced.upper_notes:
                midi.addNote(TRACK_CHORDS, CHANNEL_CHORDS, pitch, start, event.duration, self.velocity)

        total_beats = math.ceil(offset + session.total_beats)
        for beat in range(total_beats):
            accent = beat % bar_beats == 0
            midi.addNote(
                TRACK_CLICK,
                CHANNEL_CLICK,
                CLICK_ACCENT_NOTE if accent else CLICK_NOTE,
                beat,
                self.CLICK_LENGTH,
                self.CLICK_ACCENT_VELOCITY if accent else self.CLICK_VELOCITY,
            )

        logger.debug("MIDI: %d chords, %d clicks at %d BPM", len(session.events), total_beats, self.tempo)
        return midi

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export(self, session: PlaybackSession, output_path: str) -> None:
        """
        Render the session timeline to a Standard MIDI File.

        Raises:
            ValueError: If the bar is too long for a MIDI time signature.
            OSError:    If the output file cannot be opened for writing.
        """
        midi = self._build_midi(session)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
