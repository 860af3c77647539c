"""
Audio Repair Runner
===================
Repairs buffer underflows and sampling rate deviations in the free
conversation audio of one or more CommGame pairs, then aligns both labs'
recordings to the shared start time.

Usage:
    python -m commgame_audio.run_repair /data/commgame 12              # repair pair 12
    python -m commgame_audio.run_repair /data/commgame 12 13 14        # several pairs
    python -m commgame_audio.run_repair /data/commgame 12 --dry-run    # report only
    python -m commgame_audio.run_repair /data/commgame 12 --sampling-tol 1.0 --out-dir /tmp/out
"""

import argparse
from pathlib import Path

from .constants import FS, MISSING_SAMPLE_THR, SAMPLING_TOL, TIME_DIFF_THR
from .pipeline_log import PipelineLogger
from .repair import repair_pair


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Repair underflows and sampling rate drift in CommGame pair audio.")
    ap.add_argument("input_dir", help="Folder holding pair-level data (searched recursively)")
    ap.add_argument("pairs", nargs="+", type=int, help="Pair number(s), 1-999")
    ap.add_argument("--time-diff-thr", type=float, default=TIME_DIFF_THR,
                    help=f"Packet time difference flagging an underflow, in s (default {TIME_DIFF_THR})")
    ap.add_argument("--missing-sample-thr", type=float, default=MISSING_SAMPLE_THR,
                    help=f"Missing frames needed to insert silence (default {MISSING_SAMPLE_THR})")
    ap.add_argument("--sampling-tol", type=float, default=SAMPLING_TOL,
                    help=f"Tolerated deviation from nominal sampling rate, in Hz (default {SAMPLING_TOL})")
    ap.add_argument("--fs", type=int, default=FS, help=f"Nominal sampling rate in Hz (default {FS})")
    ap.add_argument("--out-dir", default=None, help="Write repaired audio here instead of input_dir")
    ap.add_argument("--dry-run", action="store_true", help="Only detect and report, do not write audio")
    ap.add_argument("--log-file", default=None, help="Also save the run log to this text file")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)

    input_dir = Path(args.input_dir).resolve()
    if not input_dir.is_dir():
        raise SystemExit(f"ERROR: Input dir does not exist: {input_dir}")
    out_dir = Path(args.out_dir).resolve() if args.out_dir else None

    L = PipelineLogger()
    summaries = []
    try:
        for pair_no in args.pairs:
            summaries.append(repair_pair(
                input_dir,
                pair_no,
                time_diff_thr=args.time_diff_thr,
                missing_sample_thr=args.missing_sample_thr,
                sampling_tol=args.sampling_tol,
                fs=args.fs,
                out_dir=out_dir,
                dry_run=args.dry_run,
                logger=L,
            ))
    except (FileNotFoundError, ValueError) as e:
        L.log(f"ERROR: {e}")
        if args.log_file:
            L.flush_to(Path(args.log_file))
        raise SystemExit(f"ERROR: {e}")

    L.log()
    L.log("=" * 80)
    L.log("SUMMARY")
    L.log("=" * 80)
    for s in summaries:
        parts = []
        for lab, info in s['labs'].items():
            parts.append(
                f"{lab}: {len(info['gaps'])} gaps, {info['inserted_frames']} frames inserted, "
                f"{info['fs_emp']:.2f} Hz{' (resampled)' if info['resampled'] else ''}"
            )
        L.log(f"  pair{s['pair_no']}: " + " | ".join(parts) + f" | {s['n_frames']} frames out")
    if L.warnings:
        L.log(f"  {len(L.warnings)} warning(s) raised, see above")

    if args.log_file:
        L.flush_to(Path(args.log_file))

    return summaries


if __name__ == '__main__':
    main()
