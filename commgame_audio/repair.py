"""
Pair-Level Audio Repair
=======================
Repairs buffer underflows and bad sampling rates in the two free
conversation recordings (Mordor and Gondor labs) of a CommGame pair, and
aligns them to the shared start time taken from the video recording.

Every step takes a ChannelContext and returns a new one:
    load -> detect gaps -> repair gaps -> drift check / resample
Both channels are then trimmed, mixed to mono, normalized and cut to the
same length before anything is written.

Outputs:
    <out_dir>/pair<N>_Mordor_freeConv_repaired_mono.wav
    <out_dir>/pair<N>_Gondor_freeConv_repaired_mono.wav
"""

from dataclasses import dataclass, replace
from pathlib import Path

import numpy as np
import soundfile as sf

from .alignment import align_channels
from .constants import (
    AUDIO_MAT_TEMPLATE,
    AUDIO_WAV_TEMPLATE,
    FS,
    LAB_NAMES,
    MAX_PAIR_NO,
    MIN_PAIR_NO,
    MISSING_SAMPLE_THR,
    OUTPUT_SUBTYPE,
    OUTPUT_WAV_TEMPLATE,
    PEAK_LEVEL,
    SAMPLING_TOL,
    TIME_DIFF_THR,
    VIDEO_LAB,
    VIDEO_MAT_TEMPLATE,
)
from .drift import correct_drift
from .pipeline_log import PipelineLogger
from .timing import PacketTimingRecord, load_audio_metadata, load_shared_start_time
from .underflow import GapEvent, detect_gaps, inserted_frames, repair_gaps


@dataclass(frozen=True)
class ChannelContext:
    """Everything known about one lab's recording at a given pipeline step."""
    lab: str
    audio: np.ndarray
    timing: PacketTimingRecord
    first_frame_time: float
    fs: int = FS
    wav_path: Path | None = None
    gaps: tuple[GapEvent, ...] = ()
    inserted: int = 0
    fs_emp: float | None = None
    resampled: bool = False


# =============================================================================
# FILES
# =============================================================================

def check_pair_no(pair_no: int) -> int:
    if int(pair_no) != pair_no or not MIN_PAIR_NO <= pair_no <= MAX_PAIR_NO:
        raise ValueError(f"Pair number should be an integer in range {MIN_PAIR_NO}:{MAX_PAIR_NO}, got {pair_no}")
    return int(pair_no)


def _find_one(root: Path, name: str) -> Path:
    matches = sorted(p for p in root.rglob(name) if p.is_file())
    if not matches:
        raise FileNotFoundError(f"Cannot find {name} under {root}")
    return matches[0]


def find_pair_files(input_dir: Path, pair_no: int) -> dict:
    """
    Search input_dir recursively for the audio and video timing files of a pair.

    Returns:
        Dict with one {'audiowav', 'audiomat'} dict per lab name and the
        path of the video timing file under 'videomat'
    """
    root = Path(input_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Input dir is not a valid path to a directory: {root}")
    pair_no = check_pair_no(pair_no)

    files = {}
    for lab in LAB_NAMES:
        files[lab] = {
            'audiowav': _find_one(root, AUDIO_WAV_TEMPLATE.format(pair_no=pair_no, lab=lab)),
            'audiomat': _find_one(root, AUDIO_MAT_TEMPLATE.format(pair_no=pair_no, lab=lab)),
        }
    files['videomat'] = _find_one(root, VIDEO_MAT_TEMPLATE.format(pair_no=pair_no, lab=VIDEO_LAB))
    return files


def output_paths(out_dir: Path, pair_no: int) -> dict[str, Path]:
    return {
        lab: Path(out_dir) / OUTPUT_WAV_TEMPLATE.format(pair_no=pair_no, lab=lab)
        for lab in LAB_NAMES
    }


def read_audio(wav_path: Path, fs: int = FS) -> np.ndarray:
    """Read a recording as float64, refusing files not sampled at fs."""
    data, sr = sf.read(str(wav_path), dtype='float64', always_2d=False)
    if sr != fs:
        raise ValueError(f"Unexpected sampling freq ({sr}) in audio file at {wav_path}")
    return data


def write_repaired_audio(out_path: Path, audio: np.ndarray, fs: int = FS) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(out_path), audio, fs, subtype=OUTPUT_SUBTYPE)
    return out_path


# =============================================================================
# PIPELINE STEPS
# =============================================================================

def load_channel(lab: str, wav_path: Path, mat_path: Path, fs: int = FS) -> ChannelContext:
    first_frame_time, timing = load_audio_metadata(mat_path)
    audio = read_audio(wav_path, fs)
    return ChannelContext(
        lab=lab,
        audio=audio,
        timing=timing,
        first_frame_time=first_frame_time,
        fs=fs,
        wav_path=Path(wav_path),
    )


def detect_channel_gaps(
    ctx: ChannelContext,
    time_diff_thr: float = TIME_DIFF_THR,
    missing_sample_thr: float = MISSING_SAMPLE_THR,
) -> ChannelContext:
    gaps = detect_gaps(ctx.timing, time_diff_thr, missing_sample_thr, ctx.fs)
    return replace(ctx, gaps=tuple(gaps))


def repair_channel_gaps(ctx: ChannelContext) -> ChannelContext:
    if not ctx.gaps:
        return ctx
    audio = repair_gaps(ctx.audio, ctx.timing, list(ctx.gaps))
    return replace(ctx, audio=audio, inserted=inserted_frames(ctx.gaps))


def correct_channel_drift(
    ctx: ChannelContext,
    sampling_tol: float = SAMPLING_TOL,
    logger: PipelineLogger | None = None,
) -> ChannelContext:
    audio, fs_emp, resampled = correct_drift(ctx.audio, ctx.timing, ctx.fs, sampling_tol, logger, ctx.lab)
    return replace(ctx, audio=audio, fs_emp=fs_emp, resampled=resampled)


def check_start_times(contexts: list[ChannelContext], shared_start_time: float) -> None:
    """Audio recordings must have started before the video stream."""
    for ctx in contexts:
        if ctx.first_frame_time >= shared_start_time:
            raise ValueError(
                f"Insane audio versus task and video start times! {ctx.lab} audio started at "
                f"{ctx.first_frame_time}, shared start time is {shared_start_time}"
            )


# =============================================================================
# PAIR LEVEL
# =============================================================================

def repair_pair(
    input_dir: Path,
    pair_no: int,
    time_diff_thr: float = TIME_DIFF_THR,
    missing_sample_thr: float = MISSING_SAMPLE_THR,
    sampling_tol: float = SAMPLING_TOL,
    fs: int = FS,
    out_dir: Path | None = None,
    dry_run: bool = False,
    peak: float = PEAK_LEVEL,
    logger: PipelineLogger | None = None,
) -> dict:
    """
    Repair, align and save the two free conversation recordings of a pair.

    Args:
        input_dir: Folder holding pair-level data, searched recursively
        pair_no: Pair number, one of 1:999
        time_diff_thr: Packet time difference (s) flagging a possible underflow
        missing_sample_thr: Missing frames needed to insert silence
        sampling_tol: Tolerated deviation from fs (Hz) before resampling
        fs: Nominal sampling rate (Hz)
        out_dir: Output folder, defaults to input_dir
        dry_run: Detect and report only, do not write audio
        peak: Peak level after normalization

    Returns:
        Dict summarizing the repair per lab and the output paths
    """
    L = logger if logger is not None else PipelineLogger()
    input_dir = Path(input_dir)
    out_dir = Path(out_dir) if out_dir is not None else input_dir

    L.log("=" * 80)
    L.log("Called audio repair with input args:")
    L.log(f"  Input dir: {input_dir}")
    L.log(f"  Pair number: {pair_no}")
    L.log(f"  Time difference threshold: {time_diff_thr * 1000:g} ms")
    L.log(f"  Missing sample threshold: {missing_sample_thr:g} frames")
    L.log(f"  Sampling rate deviation tolerance: {sampling_tol:g} Hz")
    L.log(f"  Nominal sampling rate: {fs} Hz")
    L.log("=" * 80)

    files = find_pair_files(input_dir, pair_no)
    L.log("Found relevant files:")
    for lab in LAB_NAMES:
        L.log(f"  {lab} audio : {files[lab]['audiowav']}")
        L.log(f"  {lab} meta  : {files[lab]['audiomat']}")
    L.log(f"  Video times : {files['videomat']}")

    shared_start_time = load_shared_start_time(files['videomat'])
    contexts = [
        load_channel(lab, files[lab]['audiowav'], files[lab]['audiomat'], fs)
        for lab in LAB_NAMES
    ]
    check_start_times(contexts, shared_start_time)
    L.log("Loaded audio files and recording metadata")

    contexts = [detect_channel_gaps(ctx, time_diff_thr, missing_sample_thr) for ctx in contexts]
    L.log("Checked for missing samples (underflows)")
    for ctx in contexts:
        L.log(f"  For {ctx.lab}, there were {len(ctx.gaps)} suspected events")

    contexts = [repair_channel_gaps(ctx) for ctx in contexts]
    L.log("Inserted silent frames for detected underflow events")
    for ctx in contexts:
        if ctx.inserted:
            L.log(f"  {ctx.lab}: {ctx.inserted} frames inserted")

    contexts = [correct_channel_drift(ctx, sampling_tol, L) for ctx in contexts]

    summary = {
        'pair_no': pair_no,
        'shared_start_time': shared_start_time,
        'labs': {
            ctx.lab: {
                'source': ctx.wav_path,
                'gaps': list(ctx.gaps),
                'inserted_frames': ctx.inserted,
                'fs_emp': ctx.fs_emp,
                'resampled': ctx.resampled,
            }
            for ctx in contexts
        },
        'outputs': {},
    }

    by_lab = {ctx.lab: ctx for ctx in contexts}
    mordor, gondor = LAB_NAMES
    aligned = align_channels(
        by_lab[mordor].audio, by_lab[mordor].first_frame_time,
        by_lab[gondor].audio, by_lab[gondor].first_frame_time,
        shared_start_time, fs, peak, L,
    )
    L.log("Trimmed both audio channels to video start, set to mono and normalized")
    summary['n_frames'] = int(aligned[0].shape[0])

    if dry_run:
        L.log("Dry run: no files written.")
        return summary

    for lab, audio in zip(LAB_NAMES, aligned):
        path = write_repaired_audio(output_paths(out_dir, pair_no)[lab], audio, fs)
        summary['outputs'][lab] = path
        L.log(f"{lab} audio saved out to: {path}")

    return summary
