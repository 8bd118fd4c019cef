"""Utility functions for the Newsreel worker."""

from newsreel.utils.error_handler import redact_secrets
from newsreel.utils.text_utils import normalize_url, split_voiceover_into_chunks, trim_to_max

__all__ = [
    "normalize_url",
    "redact_secrets",
    "split_voiceover_into_chunks",
    "trim_to_max",
]
