"""Metronome: beat-boundary detection and the click collaborator interface."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import click


@dataclass(frozen=True)
class BeatTick:
    """
    One metronome beat.

    Attributes:
        index:       Integer global beat (count-in included).
        beat_in_bar: 1-based position inside the bar.
        is_accent:   True on the first beat of a bar.
    """

    index: int
    beat_in_bar: int
    is_accent: bool


class BeatTracker:
    """Emits a BeatTick each time the sampled global beat crosses an integer."""

    def __init__(self, bar_beats: int = 4) -> None:
        self.bar_beats = bar_beats
        self.last_beat_index = -1
        self.last_beat_in_bar = 1

    def reset(self) -> None:
        self.last_beat_index = -1
        self.last_beat_in_bar = 1

    def update(self, global_beat: float) -> BeatTick | None:
        beat_index = math.floor(global_beat)
        if beat_index == self.last_beat_index:
            return None

        beat_in_bar = beat_index % self.bar_beats + 1
        self.last_beat_index = beat_index
        self.last_beat_in_bar = beat_in_bar
        return BeatTick(index=beat_index, beat_in_bar=beat_in_bar, is_accent=beat_in_bar == 1)


# ── Click collaborators ───────────────────────────────────────────────────────

class ClickSink(ABC):
    """Receives one trigger per metronome beat; producing a sound is its own business."""

    @abstractmethod
    def click(self, beat_in_bar: int, is_accent: bool) -> None:
        """Handle one beat trigger."""


class SilentClick(ClickSink):
    """Ignores every beat."""

    def click(self, beat_in_bar: int, is_accent: bool) -> None:
        return None


class BellClick(ClickSink):
    """
    Rings the terminal bell.

    By default only the accented first beat rings, since most terminals
    throttle rapid bells.
    """

    def __init__(self, accent_only: bool = True) -> None:
        self.accent_only = accent_only

    def click(self, beat_in_bar: int, is_accent: bool) -> None:
        if is_accent or not self.accent_only:
            click.echo("\a", nl=False)


@dataclass
class RecordingClick(ClickSink):
    """Keeps every trigger in order."""

    beats: list[tuple[int, bool]] = field(default_factory=list)

    def click(self, beat_in_bar: int, is_accent: bool) -> None:
        self.beats.append((beat_in_bar, is_accent))
