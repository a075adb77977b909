"""Renderer implementations for the chord/lyric sheet."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict

import click

from songscroller.grid_aligner import strip_durations
from songscroller.playback_driver import FrameUpdate, PlaybackSession
from songscroller.song_models import SegmentRef


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class SheetRenderer(ABC):
    """Abstract sheet renderer."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this renderer."""

    @abstractmethod
    def render(self, *, session: PlaybackSession, frame: FrameUpdate | None = None) -> str:
        """Render the sheet, highlighted for ``frame`` when given, into a string."""


class TerminalSheetRenderer(SheetRenderer):
    """
    Render the sheet as monospaced text for a terminal.

    Active chords are bold green; an active lyric segment shows its fill by
    inverting the first ``round(fill * len)`` characters. The block under the
    pointer and any block receiving a carry get a ``▶`` gutter mark.
    """

    CURRENT_MARK = "▶ "
    GUTTER = "  "

    def __init__(self, *, window_blocks: int | None = None, color: bool = True) -> None:
        """
        Args:
            window_blocks: Show at most this many blocks, starting one block
                           above the scroll target. None shows all blocks.
            color:         Emit ANSI styles; without them only the gutter
                           marks the position.
        """
        self.window_blocks = window_blocks
        self.color = color

    @property
    def default_extension(self) -> str:
        return ".txt"

    def _style(self, text: str, **styles: object) -> str:
        return click.style(text, **styles) if self.color else text

    def _chord_segment(self, text: str, active: bool) -> str:
        text = strip_durations(text)
        return self._style(text, fg="green", bold=True) if active else text

    def _lyric_segment(self, text: str, ref: SegmentRef, frame: FrameUpdate | None) -> str:
        if frame is None or ref not in frame.lyric_fills:
            return text
        filled = round(frame.fill(ref) * len(text))
        return self._style(text[:filled], fg="black", bg="yellow") + self._style(text[filled:], fg="yellow")

    def _visible_blocks(self, block_count: int, frame: FrameUpdate | None) -> range:
        if self.window_blocks is None:
            return range(block_count)
        anchor = frame.scroll_block if frame is not None and frame.scroll_block is not None else 0
        first = max(0, anchor - 1)
        return range(first, min(block_count, first + self.window_blocks))

    def render_header(self, session: PlaybackSession, frame: FrameUpdate | None) -> list[str]:
        lines = [session.song.meta.summary()]
        if frame is None:
            return lines

        dots = " ".join(
            ("●" if n == frame.beat_in_bar else "○") for n in range(1, session.bar_beats + 1)
        )
        status = f"BPM {frame.bpm:g}  Beat {frame.musical_beat:.2f}  {dots}  Now: {frame.now_chord}"
        if frame.count_in_text:
            status += f"  {frame.count_in_text}"
        lines.append(status)
        return lines

    def render_block(self, session: PlaybackSession, block_index: int, frame: FrameUpdate | None) -> list[str]:
        block = session.blocks[block_index]
        aligned = block.aligned
        is_current = frame is not None and block_index in frame.current_blocks
        gutter = self.CURRENT_MARK if is_current else self.GUTTER

        chord_row = "".join(
            self._chord_segment(
                text,
                frame is not None and SegmentRef(block_index, seg) in frame.active_chords,
            )
            for seg, text in enumerate(aligned.chord_segments)
        )
        lines = [gutter + chord_row.rstrip()]

        if block.has_lyrics:
            lyric_row = "".join(
                self._lyric_segment(text, SegmentRef(block_index, seg), frame)
                for seg, text in enumerate(aligned.lyric_segments)
            )
            lines.append(self.GUTTER + lyric_row.rstrip())
        return lines

    def render(self, *, session: PlaybackSession, frame: FrameUpdate | None = None) -> str:
        lines = self.render_header(session, frame)
        lines.append("")
        if not session.blocks:
            lines.append(self.GUTTER + "(no [chords] sections)")
        for block_index in self._visible_blocks(len(session.blocks), frame):
            lines.extend(self.render_block(session, block_index, frame))
            lines.append("")
        return "\n".join(lines)


class TerminalPlaybackView:
    """Frame callback that redraws the terminal sheet on every frame."""

    def __init__(self, session: PlaybackSession, renderer: TerminalSheetRenderer) -> None:
        self.session = session
        self.renderer = renderer

    def __call__(self, frame: FrameUpdate) -> None:
        click.clear()
        click.echo(self.renderer.render(session=self.session, frame=frame))


class HtmlSheetRenderer(SheetRenderer):
    """
    Render the sheet into a self-contained HTML document.

    Every segment is a ``<span>`` carrying ``data-block`` and ``data-seg``
    indices, and the event timeline plus carry links are embedded as JSON,
    so a browser-side player can map frame output onto its own elements.
    """

    @property
    def default_extension(self) -> str:
        return ".html"

    def timeline_payload(self, session: PlaybackSession) -> dict[str, object]:
        return {
            "bar_beats": session.bar_beats,
            "bpm": session.song.meta.bpm,
            "events": [asdict(event) for event in session.events],
            "carries": [asdict(link) for link in session.carries.links()],
        }

    def _block_html(self, session: PlaybackSession, block_index: int) -> str:
        block = session.blocks[block_index]
        aligned = block.aligned

        chords = "".join(
            f'<span class="chseg" data-block="{block_index}" data-seg="{seg}">'
            f"{_escape_html(strip_durations(text))}</span>"
            for seg, text in enumerate(aligned.chord_segments)
        )
        html = f'  <div class="block" data-block="{block_index}">\n'
        html += f'    <div class="line chords">{chords}</div>\n'
        if block.has_lyrics:
            lyrics = "".join(
                f'<span class="seg" data-block="{block_index}" data-seg="{seg}">{_escape_html(text)}</span>'
                for seg, text in enumerate(aligned.lyric_segments)
            )
            html += f'    <div class="line lyrics">{lyrics}</div>\n'
        html += "  </div>"
        return html

    def render(self, *, session: PlaybackSession, frame: FrameUpdate | None = None) -> str:
        meta = session.song.meta
        title_safe = _escape_html(meta.title or "Song")
        summary_safe = _escape_html(meta.summary())
        blocks = "\n".join(self._block_html(session, i) for i in range(len(session.blocks)))

        payload = json.dumps(self.timeline_payload(session), separators=(",", ":"), ensure_ascii=False)
        payload = payload.replace("</", "<\\/")

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title_safe}</title>
  <style>
    body {{
      font-family: Georgia, serif;
      background: #f0f0f0;
      margin: 0;
      padding: 2rem;
    }}
    .meta {{
      text-align: center;
      color: #444;
      margin-bottom: 2rem;
    }}
    .block {{
      background: #fff;
      margin: 0 auto 1rem;
      max-width: 860px;
      padding: 0.5rem 1rem;
    }}
    .line {{
      font-family: "DejaVu Sans Mono", monospace;
      white-space: pre;
    }}
    .chords {{ color: #2a6; font-weight: bold; }}
    .active {{ background: #ffe88a; }}
    .seg {{
      --fill: 0;
      background: linear-gradient(90deg, #ffd23f calc(var(--fill) * 100%), transparent 0);
    }}
    @media print {{
      body {{ background: #fff; padding: 0; }}
      .block {{ page-break-inside: avoid; }}
    }}
  </style>
</head>
<body>
  <div class="meta">{summary_safe}</div>
{blocks}
  <script id="songscroller-timeline" type="application/json">{payload}</script>
</body>
</html>"""
