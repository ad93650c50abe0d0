"""Command-line entry point: ``python -m fretscope``.

``analyze`` streams an audio file through the front-end and the analysis
engine as if it were a live source (a producer thread feeding a bounded
frame channel) and prints one JSON object per reported frame.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from typing import List, Optional

from fretscope.analysis.config import load_config, parse_override_pairs
from fretscope.analysis.engine import AnalysisEngine, FrameChannel
from fretscope.analysis.frontend import FrontEnd, iter_frames, read_audio
from fretscope.analysis.instrumentation import SessionLogger
from fretscope.analysis.models import AnalysisSnapshot
from fretscope.analysis.pitch import STANDARD_STRINGS, TUNER_MODES, TuningReference
from fretscope.errors import FretscopeError

logger = logging.getLogger("fretscope")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fretscope", description="Live instrument signal analysis")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    p_an = sub.add_parser("analyze", help="Analyze an audio file frame by frame")
    p_an.add_argument("--audio_path", required=True, help="Path to input audio file")
    p_an.add_argument("--config", default=None, help="Optional TOML config file")
    p_an.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
                      help="Dotted config override, e.g. peaks.max_peaks=5 (repeatable)")
    p_an.add_argument("--a4", default=None, help="Reference pitch for A4 in Hz (400-500)")
    p_an.add_argument("--tuner-mode", default=None, choices=TUNER_MODES, help="Tuner target")
    p_an.add_argument("--calibrate", action="store_true", help="Run a calibration window at start")
    p_an.add_argument("--every", type=int, default=1, help="Print every Nth frame")
    p_an.add_argument("--spectrum", action="store_true", help="Include magnitude spectra in output")
    p_an.add_argument("--log-dir", default=None, help="Write events.jsonl and timing.json here")

    p_str = sub.add_parser("strings", help="Print the standard tuning table")
    p_str.add_argument("--a4", default="440", help="Reference pitch for A4 in Hz (400-500)")
    return parser


def _produce(path: str, engine: AnalysisEngine, channel: FrameChannel, errors: List[BaseException]) -> None:
    cfg = engine.config.frontend
    try:
        audio = read_audio(path, cfg.sample_rate)
        front = FrontEnd(cfg)
        for frame in iter_frames(audio, cfg.frame_size, cfg.hop_length):
            channel.put(front.analyze(frame))
    except Exception as e:
        errors.append(e)
    finally:
        channel.close()


def run_analyze(args: argparse.Namespace) -> int:
    config = load_config(args.config, parse_override_pairs(args.overrides).items())
    if args.tuner_mode:
        config.tuner.mode = args.tuner_mode

    session_logger = SessionLogger(base_dir=args.log_dir) if args.log_dir else None
    if session_logger is not None:
        session_logger.emit_config(config)

    engine = AnalysisEngine(config, session_logger=session_logger)
    if args.a4 is not None:
        engine.set_reference_pitch(args.a4)

    channel = FrameChannel(config.frame_channel_size)
    errors: List[BaseException] = []
    producer = threading.Thread(
        target=_produce, args=(args.audio_path, engine, channel, errors), name="frame-producer", daemon=True
    )
    every = max(1, int(args.every))

    def on_snapshot(snapshot: AnalysisSnapshot) -> None:
        if snapshot.frame_index % every == 0:
            print(json.dumps(snapshot.to_dict(include_spectrum=args.spectrum)))
        if session_logger is not None:
            session_logger.log_event("frame", "snapshot", snapshot.to_dict())

    producer.start()
    count = engine.run(
        channel,
        on_snapshot=on_snapshot,
        on_start=engine.start_calibration if args.calibrate else None,
    )
    producer.join()

    if engine.calibration.active:
        # input ended before the window elapsed
        engine.calibration.finish()
    if engine.calibration.last_result is not None:
        r = engine.calibration.last_result
        print(json.dumps({
            "calibration": {
                "applied": r.applied,
                "offset_cents": round(r.offset_cents, 2),
                "a4_hz": round(r.a4_hz, 3),
                "samples": r.sample_count,
            }
        }))
    if session_logger is not None:
        session_logger.finalize()

    if errors:
        raise errors[0]
    logger.info("Analyzed %d frames", count)
    return 0


def run_strings(args: argparse.Namespace) -> int:
    reference = TuningReference(args.a4)
    for s in STANDARD_STRINGS:
        print(f"{s.name}\t{s.midi}\t{s.frequency(reference.a4_hz):.2f} Hz")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    try:
        if args.command == "analyze":
            return run_analyze(args)
        return run_strings(args)
    except FretscopeError as e:
        print(f"fretscope: {e}", file=sys.stderr)
        return 2
