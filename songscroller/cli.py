"""Song Scroller CLI entry point."""

import logging
import sys
from pathlib import Path

import click

from songscroller import __version__
from songscroller.metronome import BellClick, SilentClick
from songscroller.musical_clock import MusicalClock
from songscroller.playback_driver import FrameScheduler, PlaybackDriver, PlaybackSession, build_session
from songscroller.sheet_renderers import HtmlSheetRenderer, TerminalPlaybackView, TerminalSheetRenderer
from songscroller.song_loader import SongLoadError, load_song
from songscroller.song_models import Song
from songscroller.voicing_strategy import BassTriadVoicer, TriadVoicer, VoicingStrategy

MAX_COUNT_IN_BARS = 8
VOICINGS = ("triad", "bass")


def _load_or_exit(song_file: str) -> Song:
    try:
        return load_song(song_file)
    except SongLoadError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)


def _get_voicer(voicing: str) -> VoicingStrategy:
    """Return the VoicingStrategy for the requested voicing name."""
    if voicing == "triad":
        return TriadVoicer()
    return BassTriadVoicer()


def _effective_bpm(session: PlaybackSession, bpm: int | None) -> int:
    if bpm is not None:
        return bpm
    if session.song.meta.bpm is not None:
        return session.song.meta.bpm
    return MusicalClock.DEFAULT_BPM


song_argument = click.argument("song_file", type=click.Path(exists=True, dir_okay=False, readable=True))

bpm_option = click.option(
    "--bpm",
    type=click.IntRange(MusicalClock.MIN_BPM, MusicalClock.MAX_BPM),
    default=None,
    help="Tempo override. Defaults to the song's bpm, else 120.",
)

count_in_option = click.option(
    "--count-in",
    "count_in",
    type=click.IntRange(0, MAX_COUNT_IN_BARS),
    default=MusicalClock.DEFAULT_COUNT_IN_BARS,
    show_default=True,
    help="Bars of metronome count-in before the first chord.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="songscroller")
@click.option("--verbose", "-v", is_flag=True, help="Log parsing and transport details to stderr.")
def main(verbose: bool) -> None:
    """Song Scroller — chord/lyric sheets that scroll with the beat."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
            stream=sys.stderr,
        )


# ── show subcommand ────────────────────────────────────────────────────────────

@main.command()
@song_argument
def show(song_file: str) -> None:
    """
    Print the aligned chord/lyric sheet.

    \b
    Examples:
      songscroller show jimmy.md
    """
    session = build_session(_load_or_exit(song_file))
    click.echo(TerminalSheetRenderer(color=False).render(session=session))


# ── timeline subcommand ────────────────────────────────────────────────────────

@main.command()
@song_argument
def timeline(song_file: str) -> None:
    """
    List the scheduled chord events and cross-line carries.

    \b
    Examples:
      songscroller timeline jimmy.md
    """
    session = build_session(_load_or_exit(song_file))

    click.echo(session.song.meta.summary())
    click.echo(f"  Bar    : {session.bar_beats} beats")
    click.echo(f"  Events : {len(session.events)}  ({session.total_beats:g} beats)")
    click.echo()

    for event in session.events:
        click.echo(
            f"  #{event.index:<3} block {event.block_index:<3} bar {event.bar_index:<3} "
            f"{event.start_beat:7.2f} → {event.end_beat:7.2f}  {event.chord_name}"
        )

    links = session.carries.links()
    if links:
        click.echo()
        click.echo("Carries:")
        for link in links:
            click.echo(
                f"  event #{link.source_event_index} → block {link.target_block_index} prefix "
                f"(+{link.start_offset_beats:.3f} .. +{link.end_offset_beats:.3f} beats)"
            )


# ── play subcommand ────────────────────────────────────────────────────────────

@main.command()
@song_argument
@bpm_option
@count_in_option
@click.option(
    "--fps",
    type=click.FloatRange(1, 240),
    default=FrameScheduler.DEFAULT_FPS,
    show_default=True,
    help="Redraw rate of the terminal view.",
)
@click.option(
    "--window",
    type=click.IntRange(1, 100),
    default=6,
    show_default=True,
    help="Number of blocks shown around the current line.",
)
@click.option("--click/--no-click", "use_click", default=False, show_default=True, help="Ring the terminal bell on each bar.")
def play(song_file: str, bpm: int | None, count_in: int, fps: float, window: int, use_click: bool) -> None:
    """
    Play the sheet in the terminal, highlighting chords and lyrics in time.

    Stops at the end of the song; Ctrl-C pauses and exits.

    \b
    Examples:
      songscroller play jimmy.md
      songscroller play jimmy.md --bpm 90 --count-in 1 --click
    """
    song = _load_or_exit(song_file)

    driver = PlaybackDriver(
        count_in_bars=count_in,
        click_sink=BellClick() if use_click else SilentClick(),
        scheduler=FrameScheduler(fps=fps),
        stop_at_end=True,
    )
    session = driver.load(song)
    driver.set_tempo(_effective_bpm(session, bpm))

    if not session.events:
        click.echo("  WARNING: No chords found. Each section needs a [chords] line.", err=True)
        sys.exit(1)

    driver.on_frame = TerminalPlaybackView(session, TerminalSheetRenderer(window_blocks=window))
    driver.start()
    try:
        driver.scheduler.run()
    except KeyboardInterrupt:
        driver.pause()
        click.echo()
        click.echo(f"Paused at event #{driver.current_event_index}.")
        return

    click.echo()
    click.echo("Done!")


# ── sheet subcommand ───────────────────────────────────────────────────────────

@main.command()
@song_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination HTML file. Defaults to the song path with .html.",
)
def sheet(song_file: str, output: str | None) -> None:
    """
    Write the sheet as a self-contained HTML file with the timeline embedded.

    \b
    Examples:
      songscroller sheet jimmy.md
      songscroller sheet jimmy.md -o jimmy_sheet.html
    """
    renderer = HtmlSheetRenderer()
    resolved_output = output if output is not None else str(Path(song_file).with_suffix(renderer.default_extension))

    session = build_session(_load_or_exit(song_file))
    content = renderer.render(session=session)
    try:
        with open(resolved_output, "w", encoding="utf-8") as fh:
            fh.write(content)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Done!  Open '{resolved_output}' in any browser.")


# ── midi subcommand ────────────────────────────────────────────────────────────

@main.command()
@song_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file. Defaults to the song path with .mid.",
)
@bpm_option
@count_in_option
@click.option(
    "--voicing",
    type=click.Choice(VOICINGS),
    default="bass",
    show_default=True,
    help="Chord voicing. triad: chord tones around Middle C only. bass: triad plus a bass note two octaves lower.",
)
def midi(song_file: str, output: str | None, bpm: int | None, count_in: int, voicing: str) -> None:
    """
    Export chords and a metronome click track as a practice MIDI file.

    \b
    Examples:
      songscroller midi jimmy.md
      songscroller midi jimmy.md --bpm 90 -o jimmy_practice.mid
      songscroller midi jimmy.md --voicing triad
    """
    from songscroller.midi_exporter import MidiExporter

    session = build_session(_load_or_exit(song_file))
    resolved_output = output if output is not None else str(Path(song_file).with_suffix(".mid"))
    tempo = _effective_bpm(session, bpm)

    click.echo(f"songscroller v{__version__}")
    click.echo(f"  Song   : {session.song.meta.summary()}")
    click.echo(f"  Tempo  : {tempo} BPM  |  Count-in: {count_in} bar(s)  |  Voicing: {voicing}")
    click.echo(f"  Output : {resolved_output}")

    exporter = MidiExporter(tempo=tempo, count_in_bars=count_in, voicer=_get_voicer(voicing))
    try:
        exporter.export(session, resolved_output)
    except ValueError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in any MIDI player.")
