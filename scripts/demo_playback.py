"""Quick demo script for GStreamer-backed playback sessions.

Plays one URI (or local path) through :class:`GstMediaEngine` and prints each
snapshot the session publishes.

Examples
--------
Play a local file::

    python scripts/demo_playback.py --uri /path/to/episode.mp3 --audio

Stop after ten seconds, skipping forward once after three::

    python scripts/demo_playback.py --uri file:///path/to/clip.mp4 --duration 10 --skip-at 3

Press Ctrl+C to terminate playback.
"""

from __future__ import annotations

import argparse
import signal
import sys
import time
from typing import Iterable

from mediasession import HostLifecycle, PlaybackSnapshot, SessionConfig, format_time
from mediasession.playback import open_audio_session, open_video_session
from mediasession.utils import configure_logging


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Media session playback demo")
    parser.add_argument("--uri", required=True, help="Media URI or local path to play.")
    parser.add_argument("--audio", action="store_true", help="Treat the media as audio.")
    parser.add_argument("--profile", default="default", help="Session profile to load.")
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Optional duration in seconds; 0 means run until interrupted.",
    )
    parser.add_argument(
        "--skip-at",
        type=float,
        default=0.0,
        help="Skip forward once after this many seconds (0 disables).",
    )
    return parser.parse_args(argv)


def describe(snapshot: PlaybackSnapshot) -> str:
    label = snapshot.title or snapshot.uri
    return (
        f"[{snapshot.rev:>4}] {snapshot.phase.value:<9} "
        f"{format_time(snapshot.position_ms)} / {format_time(snapshot.duration_ms)} "
        f"buf={snapshot.buffered_fraction:.0%} vol={snapshot.effective_volume:.2f} {label}"
    )


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    config = SessionConfig.from_profile(args.profile)
    host = HostLifecycle()

    opener = open_audio_session if args.audio else open_video_session
    session = opener(args.uri, config=config, host=host)
    session.subscribe(lambda snapshot: print(describe(snapshot), flush=True))
    session.play()

    stop_requested = False

    def _handle_signal(signum, frame):  # type: ignore[override]
        nonlocal stop_requested
        stop_requested = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    skipped = False
    try:
        start_time = time.monotonic()
        while not stop_requested and not session.snapshot.phase.is_terminal:
            time.sleep(0.1)
            elapsed = time.monotonic() - start_time
            if args.skip_at > 0 and not skipped and elapsed >= args.skip_at:
                session.skip_forward()
                skipped = True
            if args.duration > 0 and elapsed >= args.duration:
                break
    finally:
        host.destroy()

    return 0 if session.snapshot.error is None else 1


if __name__ == "__main__":
    sys.exit(main())
