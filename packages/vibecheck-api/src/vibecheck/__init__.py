"""VibeCheck API - realtime venue vibes, stories and regional chat."""

__version__ = "0.1.0"
