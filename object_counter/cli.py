# object_counter/cli.py
from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
import time
from dataclasses import replace
from typing import Dict, List, Optional

import cv2

from .config import (
    GROUND_TRUTH_FILENAME,
    IMAGE_SUFFIXES,
    OUT_DIR,
    PRESET_NAMES,
    SUMMARY_FILENAME_PREFIX,
    BackgroundPolicy,
    CounterConfig,
    Landscape,
    ReconcilePolicy,
    get_preset,
    setup_logging,
)
from .counter import ObjectCounter, PipelineTrace
from .eval_counts import run_evaluation
from .mask_utils import create_coloured_overlay, draw_detections
from .preprocess import load_image
from .session import StreamingSession

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Count objects in images or video without a trained model")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--path", help="Image file or directory (photo mode)")
    source.add_argument("--video", help="Video file (streaming mode, stabilised counts)")

    parser.add_argument("--preset", choices=PRESET_NAMES, default="default")
    parser.add_argument("--background", choices=[p.value for p in BackgroundPolicy])
    parser.add_argument("--reconcile", choices=[p.value for p in ReconcilePolicy])
    parser.add_argument("--landscape", choices=[p.value for p in Landscape])
    parser.add_argument("--min-area", type=int, help="Minimum box area in px²")
    parser.add_argument("--max-side", type=int, help="Downscale images whose longer side exceeds this")
    parser.add_argument("--outdir", default=str(OUT_DIR), help="Directory for summaries and artefacts")
    parser.add_argument("--artefacts", action="store_true", help="Write mask / overlay PNGs per image")
    parser.add_argument("--gt", help="Ground-truth JSON for evaluation after a batch")
    return parser


def config_from_args(args: argparse.Namespace) -> CounterConfig:
    overrides = {
        "background_policy": args.background,
        "reconcile_policy": args.reconcile,
        "landscape": args.landscape,
        "min_area": args.min_area,
        "max_side": args.max_side,
    }
    cfg = get_preset(args.preset)
    return replace(cfg, **{k: v for k, v in overrides.items() if v is not None})


def _collect_images(input_path: pathlib.Path) -> List[pathlib.Path]:
    if input_path.is_dir():
        paths = sorted(p for p in input_path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
        log.info("Processing %d images from directory: %s", len(paths), input_path)
        return paths
    if input_path.is_file():
        log.info("Processing single image: %s", input_path)
        return [input_path]
    log.error("Path not found: %s", input_path)
    return []


def _write_artefacts(outdir: pathlib.Path, stem: str, trace: PipelineTrace) -> None:
    mask_dir = outdir / "masks"
    mask_dir.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(mask_dir / f"{stem}_mask.png"), trace.refined)
    cv2.imwrite(str(outdir / f"{stem}_labels.png"), create_coloured_overlay(trace.image, trace.labels))
    cv2.imwrite(str(outdir / f"{stem}_overlay.png"), draw_detections(trace.image, trace.detections))
    log.debug("Artefacts saved for %s", stem)


def run_photos(args: argparse.Namespace, cfg: CounterConfig) -> int:
    input_path = pathlib.Path(args.path)
    image_paths = _collect_images(input_path)
    if not image_paths:
        log.warning("No images with suffixes %s found at: %s", IMAGE_SUFFIXES, input_path)
        return 1

    outdir = pathlib.Path(args.outdir)
    counter = ObjectCounter(cfg)
    results: Dict[str, int] = {}
    start_time = time.time()

    for img_path in image_paths:
        try:
            trace = counter.trace(counter.prepare(load_image(img_path)))
        except Exception as e:
            log.error("Error processing %s: %s", img_path.name, e, exc_info=True)
            continue
        results[img_path.name] = trace.count
        log.info("Detected %d objects in %s", trace.count, img_path.name)
        if args.artefacts:
            _write_artefacts(outdir, img_path.stem, trace)

    if not results:
        return 1

    log_dir = outdir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = time.strftime("%Y%m%d_%H%M%S")
    summary_path = log_dir / f"{SUMMARY_FILENAME_PREFIX}{timestamp}.json"
    summary_path.write_text(json.dumps(results, indent=2))

    log.info(
        "Summary: %d images, %d objects total, %.1fs elapsed",
        len(results),
        sum(results.values()),
        time.time() - start_time,
    )
    log.info("Summary saved to: %s", summary_path)

    # --- auto-evaluation if a GT file is given or sits beside the images ---
    gt_json_path = pathlib.Path(args.gt) if args.gt else None
    if gt_json_path is None:
        gt_dir = input_path if input_path.is_dir() else input_path.parent
        candidate = gt_dir / GROUND_TRUTH_FILENAME
        gt_json_path = candidate if candidate.exists() else None
    if gt_json_path is not None:
        log.info("Running evaluation against %s", gt_json_path.name)
        run_evaluation(gt_path=gt_json_path, pred_path=summary_path)
    return 0


def run_video(args: argparse.Namespace, cfg: CounterConfig) -> int:
    capture = cv2.VideoCapture(args.video)
    if not capture.isOpened():
        log.error("Could not open video: %s", args.video)
        return 1

    session = StreamingSession(cfg)
    session.start()
    last_count: Optional[int] = None
    try:
        while True:
            ok, frame = capture.read()
            if not ok:
                break
            try:
                result = session.submit(frame)
            except Exception as e:
                log.error("Frame %d failed: %s", session.frames_processed + 1, e, exc_info=True)
                continue
            if result is not None and result.count != last_count:
                log.info("Frame %d: count %d", session.frames_processed, result.count)
                last_count = result.count
    finally:
        capture.release()
        session.stop()

    log.info("Final stabilised count: %d", session.stabilizer.count)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    try:
        cfg = config_from_args(args)
    except ValueError as e:
        log.error("Invalid configuration: %s", e)
        return 2

    if args.video:
        return run_video(args, cfg)
    return run_photos(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
