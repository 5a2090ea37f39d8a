"""
Time label formatting for player controls.
"""

from __future__ import annotations


def format_time(ms: int) -> str:
    """
    Render a millisecond position as ``MM:SS``, or ``H:MM:SS`` past one hour.

    Negative values are treated as zero.
    """

    total_seconds = max(0, int(ms)) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours:d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
