#!/usr/bin/env python3
"""
Orb Visualiser CLI
==================

Radial spectrum bars around a circular anchor, driven by live audio.

Modes:
- live:   capture from an input or loopback device and show a preview window.
- play:   play an audio file into the visualiser in real time.
- render: export an audio file to a video with the visualiser on top.

Usage:
    python -m orbvis live --device 3
    python -m orbvis play song.wav --gradient
    python -m orbvis render song.wav --output result.mp4
    python -m orbvis -h (for help)
"""

import argparse
import logging
import os
import sys
import threading

import cv2
from moviepy import AudioFileClip, VideoClip

from orbvis.capture import FileCaptureSource, SoundDeviceCaptureSource, load_audio
from orbvis.config import VisualizerConfig
from orbvis.constants import DEFAULT_SAMPLE_RATE
from orbvis.engine import VisualizerEngine
from orbvis.errors import ConfigError
from orbvis.offline import OfflineVisualiser
from orbvis.surface import OpenCVSurface

logger = logging.getLogger("orbvis")

WINDOW_TITLE = "orbvis"
QUIT_KEYS = (ord("q"), 27)  # q, Esc


def build_config(args, sample_rate=None):
    """Merge the config file (if any) with command line overrides."""
    try:
        config = VisualizerConfig.from_file(args.config) if args.config else VisualizerConfig()
        overrides = {}
        if args.gradient:
            overrides["gradient_enabled"] = True
        if args.smoothing is not None:
            overrides["smoothing"] = args.smoothing
        if args.sensitivity is not None:
            overrides["sensitivity"] = args.sensitivity
        if args.bars is not None:
            overrides["bar_count"] = args.bars
        if sample_rate is not None:
            overrides["sample_rate"] = sample_rate
        return config.replace(**overrides) if overrides else config
    except ConfigError as e:
        sys.exit(f"[!] Invalid configuration: {e}")


def run_preview(engine, config):
    """
    Show the engine's surface in a window until the user quits or the
    window is closed. cv2 windows must be driven from the main thread, so the
    engine renders on its own loop and this just displays the latest frame.
    """
    delay_ms = max(1, int(config.render_interval_ms))
    try:
        engine.enable()
        while True:
            frame = engine.surface.latest_frame()
            if frame is not None:
                cv2.imshow(WINDOW_TITLE, frame)
            key = cv2.waitKey(delay_ms) & 0xFF
            if key in QUIT_KEYS:
                break
            if frame is not None and cv2.getWindowProperty(WINDOW_TITLE, cv2.WND_PROP_VISIBLE) < 1:
                break
    except KeyboardInterrupt:
        pass
    finally:
        engine.disable()
        cv2.destroyAllWindows()


def cmd_live(args):
    if args.list_devices:
        print(SoundDeviceCaptureSource.list_devices())
        return

    config = build_config(args, sample_rate=args.sample_rate)
    device = int(args.device) if args.device is not None and args.device.isdigit() else args.device
    source = SoundDeviceCaptureSource(config.sample_rate, device=device)
    surface = OpenCVSurface(config.canvas_size)
    logger.info(f"[+] Live capture: {config.bar_count} bars, {config.freq_min}-{config.freq_max}Hz")
    run_preview(VisualizerEngine(config, source, surface), config)


def cmd_play(args):
    if not os.path.exists(args.input):
        sys.exit(f"[!] Input file not found: {args.input}")

    source = FileCaptureSource(args.input, loop=args.loop)
    try:
        _, sample_rate = source.load()
    except Exception as e:
        sys.exit(f"[!] Error loading audio file: {e}")

    config = build_config(args, sample_rate=sample_rate)
    surface = OpenCVSurface(config.canvas_size)
    run_preview(VisualizerEngine(config, source, surface), config)


def cmd_render(args):
    if not os.path.exists(args.input):
        sys.exit(f"[!] Input file not found: {args.input}")

    try:
        samples, sample_rate = load_audio(args.input)
    except Exception as e:
        sys.exit(f"[!] Error loading audio file: {e}")

    config = build_config(args, sample_rate=sample_rate)
    visualiser = OfflineVisualiser(config, samples)

    duration = visualiser.duration
    if args.duration and args.duration < duration:
        duration = args.duration
        logger.info(f"[i] Truncating duration to {duration} seconds.")

    logger.info(f"[+] Preparing render: {config.canvas_size}px square @ {args.fps}fps")
    logger.info(f"[+] Duration: {duration:.2f} seconds")

    # moviepy may call back from worker threads; frames must come out in order
    frame_lock = threading.Lock()

    def make_frame(t):
        with frame_lock:
            frame = visualiser.frame_at(t)
        # OpenCV draws BGR, moviepy expects RGB
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    video_clip = VideoClip(make_frame, duration=duration)

    # Attach original audio
    audio_clip = AudioFileClip(args.input).subclipped(0, duration)
    video_clip = video_clip.with_audio(audio_clip)

    logger.info("[+] Rendering video... (This may take a while)")
    video_clip.write_videofile(
        args.output,
        fps=args.fps,
        codec="libx264",
        audio_codec="aac",
        threads=4,
        preset="medium",
        logger="bar",
    )
    logger.info(f"[+] Done! Saved to {args.output}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="orbvis", description="Audio-reactive radial spectrum visualiser."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="JSON file with visualiser options")
    common.add_argument("--gradient", action="store_true", help="Fade bars out with distance")
    common.add_argument("--smoothing", type=float, help="Temporal smoothing, 0-1")
    common.add_argument("--sensitivity", type=float, help="Bar gain, 64 = unity")
    common.add_argument("--bars", type=int, help="Number of bars")

    subparsers = parser.add_subparsers(dest="command", required=True)

    live = subparsers.add_parser("live", parents=[common], help="Visualise a capture device")
    live.add_argument("--device", help="Input device index or name (see --list-devices)")
    live.add_argument(
        "--sample-rate", type=int, default=DEFAULT_SAMPLE_RATE, help="Capture sample rate"
    )
    live.add_argument("--list-devices", action="store_true", help="List devices and exit")
    live.set_defaults(func=cmd_live)

    play = subparsers.add_parser("play", parents=[common], help="Visualise an audio file live")
    play.add_argument("input", help="Path to input audio file (WAV/MP3)")
    play.add_argument("--loop", action="store_true", help="Restart at the end of the file")
    play.set_defaults(func=cmd_play)

    render = subparsers.add_parser("render", parents=[common], help="Export a video")
    render.add_argument("input", help="Path to input audio file (WAV/MP3)")
    render.add_argument("--output", "-o", default="output.mp4", help="Path to output video file")
    render.add_argument("--fps", type=int, default=30, help="Frames per second")
    render.add_argument("--duration", type=int, help="Limit duration in seconds (optional)")
    render.set_defaults(func=cmd_render)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
