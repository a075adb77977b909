"""Unit tests for the terminal and HTML sheet renderers."""

import json
import re
from types import MappingProxyType

import click

from songscroller.playback_driver import FrameUpdate, PlaybackSession, build_session
from songscroller.sheet_renderers import HtmlSheetRenderer, TerminalSheetRenderer
from songscroller.song_loader import parse_song
from songscroller.song_models import SegmentRef


def _sample_session() -> PlaybackSession:
    return build_session(
        parse_song(
            "---\ntitle: Demo <Live>\nartist: Band & Co\n---\n"
            "[chords]\nC:2 G:2\n[lyrics]\nhello world\n"
            "[chords]\n   Am\n[lyrics]\nhy there\n"
            "[chords]\nF\n"
        )
    )


def _frame() -> FrameUpdate:
    return FrameUpdate(
        musical_beat=1.0,
        now_chord="C",
        current_event_index=0,
        active_chords=frozenset({SegmentRef(0, 1), SegmentRef(0, 2)}),
        lyric_fills=MappingProxyType({SegmentRef(0, 1): 0.5, SegmentRef(0, 2): 0.0}),
        current_blocks=frozenset({0}),
        scroll_block=0,
        beat_in_bar=2,
    )


def test_terminal_renderer_strips_durations() -> None:
    content = TerminalSheetRenderer(color=False).render(session=_sample_session())
    assert "  C   G" in content.splitlines()
    assert ":2" not in content


def test_terminal_renderer_keeps_lyric_columns() -> None:
    lines = TerminalSheetRenderer(color=False).render(session=_sample_session()).splitlines()
    assert "     Am" in lines
    assert "  hy there" in lines


def test_terminal_renderer_omits_missing_lyric_line() -> None:
    lines = TerminalSheetRenderer(color=False).render(session=_sample_session()).splitlines()
    f_index = lines.index("  F")
    assert lines[f_index + 1] == ""


def test_terminal_renderer_header_shows_meta() -> None:
    content = TerminalSheetRenderer(color=False).render(session=_sample_session())
    assert content.splitlines()[0] == "Demo <Live> • Band & Co • 4/4"


def test_terminal_renderer_marks_current_block() -> None:
    content = TerminalSheetRenderer(color=False).render(session=_sample_session(), frame=_frame())
    assert "▶ C   G" in content.splitlines()
    assert "Now: C" in content
    assert "○ ● ○ ○" in content


def test_terminal_renderer_shows_count_in() -> None:
    frame = FrameUpdate(musical_beat=-1.5, count_in_text="Count-in: 2 beats")
    content = TerminalSheetRenderer(color=False).render(session=_sample_session(), frame=frame)
    assert "Beat -1.50" in content
    assert "Count-in: 2 beats" in content
    assert "▶" not in content


def test_terminal_renderer_styles_active_segments() -> None:
    content = TerminalSheetRenderer(color=True).render(session=_sample_session(), frame=_frame())
    assert "\x1b[" in content
    assert "hello world" in click.unstyle(content)


def test_terminal_renderer_window_follows_scroll_block() -> None:
    frame = FrameUpdate(scroll_block=2, current_blocks=frozenset({2}))
    content = TerminalSheetRenderer(window_blocks=1, color=False).render(session=_sample_session(), frame=frame)
    assert "     Am" in content.splitlines()
    assert "C   G" not in content


def test_html_renderer_escapes_meta() -> None:
    html = HtmlSheetRenderer().render(session=_sample_session())
    assert "<title>Demo &lt;Live&gt;</title>" in html
    assert "Band &amp; Co" in html


def test_html_renderer_segments_carry_indices() -> None:
    html = HtmlSheetRenderer().render(session=_sample_session())
    assert '<span class="chseg" data-block="0" data-seg="1">C   </span>' in html
    assert '<span class="seg" data-block="1" data-seg="0">hy </span>' in html
    assert html.count('class="block"') == 3


def test_html_renderer_embeds_timeline() -> None:
    html = HtmlSheetRenderer().render(session=_sample_session())
    match = re.search(r'<script id="songscroller-timeline" type="application/json">(.*?)</script>', html)
    assert match is not None
    payload = json.loads(match.group(1))
    assert payload["bar_beats"] == 4
    assert [e["chord_name"] for e in payload["events"]] == ["C", "G", "Am", "F"]
    assert payload["carries"][0]["target_segment"] == {"block_index": 1, "segment_index": 0}


def test_html_renderer_is_valid_html_skeleton() -> None:
    html = HtmlSheetRenderer().render(session=_sample_session())
    assert html.startswith("<!DOCTYPE html>")
    assert "</html>" in html
    assert HtmlSheetRenderer().default_extension == ".html"
