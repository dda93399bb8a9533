"""
object_counter/eval_counts.py
-----------------------------
Compare ground-truth object counts with the pipeline output.

Usage
-----
python -m object_counter.eval_counts  --gt path/to/ground_truth.json
# after a run with a custom output directory:
python -m object_counter.eval_counts  --gt ground_truth.json  --outdir runs/batch1
# or, against a specific summary file:
python -m object_counter.eval_counts  --gt ground_truth.json  --pred outputs/logs/summary_20260714_101533.json
"""
from __future__ import annotations

import argparse
import json
import logging
import pathlib
import re
import statistics
from typing import Dict, List, NamedTuple, Optional

from .config import OUT_DIR, SUMMARY_FILENAME_PREFIX, setup_logging

log = logging.getLogger(__name__)


class EvalRow(NamedTuple):
    image: str
    truth: int
    predicted: int
    error: int
    pct_error: float


class EvalReport(NamedTuple):
    rows: List[EvalRow]
    mae: float
    mape: float


# --------------------------------------------------------------------------- #
def _load_json(p: pathlib.Path) -> Optional[Dict[str, int]]:
    try:
        txt = p.read_text().strip()
    except OSError as e:
        log.error("Failed to read %s: %s", p, e)
        return None

    if not txt:
        return {}
    # tolerate hand-written files without braces or with a trailing comma
    if not txt.startswith("{"):
        txt = "{\n" + txt + "\n}"
    txt = re.sub(r",\s*}", "}", txt)
    try:
        return {str(k): int(v) for k, v in json.loads(txt).items()}
    except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
        log.error("Failed to parse JSON from %s: %s", p.name, e)
        return None


def latest_summary(log_dir: pathlib.Path = OUT_DIR / "logs") -> Optional[pathlib.Path]:
    summaries = sorted(log_dir.glob(f"{SUMMARY_FILENAME_PREFIX}*.json"))
    return summaries[-1] if summaries else None


# --------------------------------------------------------------------------- #
def compare_counts(gt: Dict[str, int], pred: Dict[str, int]) -> EvalReport:
    """Per-image signed error and |error| % plus MAE / MAPE over all GT images."""
    rows: List[EvalRow] = []
    for fname, true_cnt in sorted(gt.items()):
        cv_cnt = pred.get(fname, 0)
        err = cv_cnt - true_cnt
        pct_err = abs(err) / true_cnt * 100 if true_cnt > 0 else 0.0
        rows.append(EvalRow(fname, true_cnt, cv_cnt, err, pct_err))

    mae = statistics.mean(abs(r.error) for r in rows) if rows else 0.0
    mape = statistics.mean(r.pct_error for r in rows) if rows else 0.0
    return EvalReport(rows, float(mae), float(mape))


def format_report(report: EvalReport, gt_name: str, pred_name: str) -> str:
    lines = [
        f"\nComparison  (GT = {gt_name},  Pred = {pred_name})\n",
        f"{'image':35s}  {'GT':>5s}  {'CV2':>5s}  {'Δ':>5s}  {'|Δ|%':>7s}",
        "-" * 62,
    ]
    for r in report.rows:
        lines.append(f"{r.image:35s}  {r.truth:5d}  {r.predicted:5d}  {r.error:5d}  {r.pct_error:6.1f}%")
    lines.append("-" * 62)
    lines.append(f"MAE  = {report.mae:.2f}   |   MAPE = {report.mape:.2f}%   (n={len(report.rows)})\n")
    return "\n".join(lines)


def run_evaluation(
    gt_path: pathlib.Path,
    pred_path: Optional[pathlib.Path] = None,
    outdir: pathlib.Path = OUT_DIR,
) -> Optional[EvalReport]:
    """
    Load both JSON files, print the comparison table and return the report
    (None when either file is missing or unreadable). Without `pred_path` the
    newest summary under `outdir`/logs is used.
    """
    if pred_path is None:
        pred_path = latest_summary(pathlib.Path(outdir) / "logs")

    if not pred_path or not pred_path.exists():
        log.error("No summary JSON found – run the counter first.")
        return None

    gt = _load_json(gt_path)
    if gt is None:
        return None
    pred = _load_json(pred_path)
    if pred is None:
        return None

    report = compare_counts(gt, pred)
    print(format_report(report, gt_path.name, pred_path.name))
    return report


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for command-line execution."""
    ap = argparse.ArgumentParser(description="Compare ground-truth vs pipeline counts")
    ap.add_argument("--gt", required=True, help="Ground-truth JSON file")
    ap.add_argument("--pred", help="Pipeline summary JSON (defaults to newest)")
    ap.add_argument("--outdir", default=str(OUT_DIR), help="Output directory the counter wrote to")
    args = ap.parse_args(argv)

    run_evaluation(
        pathlib.Path(args.gt),
        pathlib.Path(args.pred) if args.pred else None,
        pathlib.Path(args.outdir),
    )


if __name__ == "__main__":
    setup_logging()
    main()
