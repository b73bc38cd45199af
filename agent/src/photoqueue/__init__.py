"""PhotoQueue client - offline-first photo queue, shell cache and sync engine."""

__version__ = "0.1.0"
