#!/usr/bin/env python3
"""
Salience Tracker: video runner
===============================
Plays a video file (or a webcam) through the salience pipeline and writes an
annotated copy: the tracked box and its identity label are drawn in
difference mode, so they invert whatever is underneath.

  Pipeline per frame
  ------------------
  sample grid -> score cells -> threshold -> close -> label blobs
              -> pick largest valid blob -> SCANNING / LOCKED tracker

Usage
-----
  python motion_scripts/salience_track.py --input clips/street.mp4
  python motion_scripts/salience_track.py --input clips/street.mp4 \\
      --profile variance --cell-size 24 --min-cluster-size 6 --debug
  python motion_scripts/salience_track.py --webcam 0 --display

  A JSON profile file (see salience/config.py) can carry all settings:
  python motion_scripts/salience_track.py --input a.mp4 --config site_a.json

  Command-line flags override the profile / config file.

Per-frame results can be written as JSON lines with --results out.jsonl:
  {"frame": 12, "state": "LOCKED", "x": 0.41, "y": 0.22, "w": 0.12, "h": 0.09,
   "id": "Object_03", "score": 44.7}
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path

if not os.environ.get("DISPLAY") and os.environ.get("QT_QPA_PLATFORM") is None:
    os.environ["QT_QPA_PLATFORM"] = "offscreen"

import cv2
from loguru import logger

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from salience.config import PROFILES, apply_overrides, get_profile, load_config  # noqa: E402
from salience.errors import ConfigError  # noqa: E402
from salience.overlay import OverlayRenderer  # noqa: E402
from salience.pipeline import SalienceDetector, not_ready_result  # noqa: E402
from salience.source import CaptureSource  # noqa: E402


SUPPORTED_EXTENSIONS = {".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm", ".m4v"}

# (section, field, flag, type, help)
TUNABLES = [
    ("grid",  "mode",                 "--grid-mode",            str,   "cell | fixed_width"),
    ("grid",  "cell_size",            "--cell-size",            int,   "Source pixels per grid cell"),
    ("grid",  "width_cells",          "--width-cells",          int,   "Grid width in fixed_width mode"),
    ("score", "rule",                 "--rule",                 str,   "edge | variance"),
    ("score", "threshold",            "--threshold",            float, "Binarization cutoff"),
    ("score", "edge_floor",           "--edge-floor",           float, "Edge strength below this is ignored"),
    ("score", "edge_ceiling",         "--edge-ceiling",         float, "Edge score ceiling"),
    ("score", "variance_weight",      "--variance-weight",      float, None),
    ("score", "edge_weight",          "--edge-weight",          float, None),
    ("score", "attraction_bonus",     "--attraction-bonus",     float, None),
    ("score", "noise_weight",         "--noise-weight",         float, "Liveness noise amplitude"),
    ("score", "noise_seed",           "--noise-seed",           float, None),
    ("morphology", "iterations",      "--morph-iterations",     int,   "Closing passes (0 disables)"),
    ("blob",  "strategy",             "--strategy",             str,   "components | seed_flood"),
    ("blob",  "min_cluster_size",     "--min-cluster-size",     int,   "Min cells per blob"),
    ("blob",  "min_cluster_fraction", "--min-cluster-fraction", float, "Min blob size as grid fraction"),
    ("blob",  "max_cluster_fraction", "--max-cluster-fraction", float, "Max blob size as grid fraction"),
    ("blob",  "min_aspect",           "--min-aspect",           float, None),
    ("blob",  "max_aspect",           "--max-aspect",           float, None),
    ("blob",  "lock_threshold",       "--lock-threshold",       float, "seed_flood: min seed score"),
    ("blob",  "cluster_threshold",    "--cluster-threshold",    float, "seed_flood: min member score"),
    ("track", "smoothing",            "--smoothing",            float, "Interpolation factor t in (0, 1]"),
    ("track", "renewal_distance",     "--renewal-distance",     float, "Centre jump that starts a new id"),
    ("track", "boredom_frames",       "--boredom-frames",       int,   "Still frames before a new id (0 = off)"),
    ("track", "boredom_epsilon",      "--boredom-epsilon",      float, None),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Salience tracker: grid scoring + blob tracking on video",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    io = parser.add_argument_group("I/O")
    src = io.add_mutually_exclusive_group(required=True)
    src.add_argument("--input", "-i", help="Video file")
    src.add_argument("--webcam", type=int, help="Webcam index")
    io.add_argument("--output", "-o", default=None,
                    help="Output path (auto-named <input>_salience.mp4 if omitted)")
    io.add_argument("--results", default=None, help="Write per-frame results as JSON lines")
    io.add_argument("--display", action="store_true")
    io.add_argument("--debug", action="store_true",
                    help="3-panel debug view: score map | mask | tracked")
    io.add_argument("--scale", type=float, default=1.0)
    io.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = all)")
    io.add_argument("--log-level", default="WARNING")

    cfg = parser.add_argument_group("Profile")
    cfg.add_argument("--profile", default="edge", choices=sorted(PROFILES))
    cfg.add_argument("--config", default=None, help="JSON profile file (overrides --profile)")
    cfg.add_argument("--aspect-filter", dest="use_aspect_filter", action="store_true", default=None)
    cfg.add_argument("--no-aspect-filter", dest="use_aspect_filter", action="store_false")
    cfg.add_argument("--hold-on-not-ready", dest="hold_on_not_ready", action="store_true",
                     default=None, help="Repeat the last result on frames that fail to decode")

    tun = parser.add_argument_group("Tuning  (unset flags keep the profile value)")
    for _, name, flag, typ, help_text in TUNABLES:
        tun.add_argument(flag, dest=name, type=typ, default=None, help=help_text)
    return parser


def config_from_args(args: argparse.Namespace):
    base = load_config(args.config) if args.config else get_profile(args.profile)
    overrides = {}
    for section, name, _, _, _ in TUNABLES:
        value = getattr(args, name)
        if value is not None:
            overrides.setdefault(section, {})[name] = value
    if args.use_aspect_filter is not None:
        overrides.setdefault("blob", {})["use_aspect_filter"] = args.use_aspect_filter
    if args.hold_on_not_ready is not None:
        overrides.setdefault("track", {})["hold_on_not_ready"] = args.hold_on_not_ready
    return apply_overrides(base, overrides)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        print(f"[ERROR] {exc}")
        return 1

    # ------------------------------------------------------------------ paths
    if args.input is not None:
        input_path = Path(args.input)
        if not input_path.is_file():
            print(f"[ERROR] File not found: {input_path}");  return 1
        if input_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            print(f"[ERROR] Unsupported extension: {input_path.suffix}");  return 1
        target = str(input_path)
        out_path = Path(args.output) if args.output else \
            input_path.parent / f"{input_path.stem}_salience.mp4"
    else:
        target = args.webcam
        out_path = Path(args.output) if args.output else Path(f"webcam{args.webcam}_salience.mp4")

    source = CaptureSource(target)
    if not source.opened:
        print(f"[ERROR] Cannot open: {target}");  return 1

    total_frames = source.frame_count
    fps_in = source.fps
    width, height = source.width, source.height
    profile_name = Path(args.config).stem if args.config else args.profile

    print(f"\nInput        : {target}")
    print(f"Output       : {out_path}")
    print(f"Frames       : {total_frames}  |  FPS: {fps_in:.1f}  |  {width}×{height}")
    print(f"Profile      : {profile_name}  (rule={config.score.rule}, strategy={config.blob.strategy})")
    print(f"Grid         : {config.grid.mode}  cell={config.grid.cell_size}  width={config.grid.width_cells}")
    print(f"Blob filter  : min={config.blob.min_cluster_size}  "
          f"max={config.blob.max_cluster_fraction:.0%}  "
          f"aspect={'ON' if config.blob.use_aspect_filter else 'OFF'}")
    print(f"Smoothing    : t={config.track.smoothing}   renewal={config.track.renewal_distance}")
    print()

    detector = SalienceDetector(config)
    renderer = OverlayRenderer()

    out_w = width * 3 if args.debug else width
    scaled_w = max(1, int(out_w * args.scale))
    scaled_h = max(1, int(height * args.scale))
    writer = cv2.VideoWriter(str(out_path), cv2.VideoWriter_fourcc(*"mp4v"),
                             fps_in, (scaled_w, scaled_h))
    if not writer.isOpened():
        print(f"[ERROR] Cannot create output: {out_path}");  source.release();  return 1

    results_file = open(args.results, "w") if args.results else None

    # ------------------------------------------------------------------ main loop
    frame_idx = 0
    t_start = time.time()
    fps_counter = 0
    live_fps = 0.0
    t_fps = time.time()
    locked_frames = 0

    try:
        while True:
            if not source.read():
                break

            analysis = detector.analyze(source)
            result = analysis.result if analysis is not None else \
                not_ready_result(detector.config, detector.state)
            if result.locked:
                locked_frames += 1

            if results_file is not None:
                record = {"frame": frame_idx, **result.to_dict()}
                results_file.write(json.dumps(record) + "\n")

            annotated = renderer.render(source.frame, result)
            annotated = renderer.draw_hud(annotated, frame_idx, live_fps, profile_name, analysis)
            if args.debug and analysis is not None:
                out_frame = renderer.build_debug_panel(analysis, annotated)
            elif args.debug:
                out_frame = cv2.hconcat([annotated * 0, annotated * 0, annotated])
            else:
                out_frame = annotated

            if args.scale != 1.0:
                out_frame = cv2.resize(out_frame, (scaled_w, scaled_h))
            writer.write(out_frame)

            if args.display:
                cv2.imshow("Salience Tracker  [q to quit]", out_frame)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break

            fps_counter += 1
            now = time.time()
            if now - t_fps >= 1.0:
                live_fps = fps_counter / (now - t_fps);  fps_counter = 0;  t_fps = now

            if frame_idx % 30 == 0 or frame_idx == total_frames - 1:
                pct = frame_idx / max(total_frames, 1) * 100
                status = (f"{result.id}  ({result.x:.2f},{result.y:.2f})"
                          if result.locked else "SCANNING")
                print(f"  [{pct:5.1f}%] Frame {frame_idx:5d}/{total_frames}"
                      f"  {status:<28}  fps:{live_fps:4.1f}    ", end="\r")

            frame_idx += 1
            if args.max_frames and frame_idx >= args.max_frames:
                break
    finally:
        source.release();  writer.release()
        if results_file is not None:
            results_file.close()
        if args.display:
            cv2.destroyAllWindows()

    elapsed = max(time.time() - t_start, 1e-6)
    print(f"\n\nDone. {frame_idx} frames in {elapsed:.1f}s "
          f"({frame_idx / elapsed:.1f} fps avg)  |  locked {locked_frames} frames, "
          f"last id {detector.state.track.label if detector.state.track.identity else 'none'}")
    print(f"Saved → {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
