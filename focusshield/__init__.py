"""FocusShield: local-first focus sessions, ship notes and weekly fragmentation reports."""

__version__ = "1.0.0"
