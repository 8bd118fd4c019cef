"""Newsreel - personalized news video generation."""

__version__ = "1.0.0"
