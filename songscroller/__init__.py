"""Song Scroller: chord/lyric sheets that follow a musical clock."""

__version__ = "0.1.0"
