"""
Buffer Underflow Repair
=======================
When a buffer underflow happens during recording, the stream time jumps
ahead while the elapsed sample count does not follow. Such packets are
detected from the packet timing record and the missing segment is injected
back as silence.
"""

from typing import NamedTuple

import numpy as np

from .constants import FS, MISSING_SAMPLE_THR, TIME_DIFF_THR
from .timing import PacketTimingRecord, to_frames


class GapEvent(NamedTuple):
    """Packet boundary (packet_index -> packet_index + 1) with missing audio."""
    packet_index: int
    missing_samples: float


def detect_gaps(
    timing: PacketTimingRecord,
    time_diff_thr: float = TIME_DIFF_THR,
    missing_sample_thr: float = MISSING_SAMPLE_THR,
    fs: int = FS,
) -> list[GapEvent]:
    """
    Find suspected underflow events in a packet timing record.

    A packet pair is suspect if the stream time difference exceeds
    time_diff_thr. A suspect pair becomes a gap if the samples expected from
    the time difference exceed the recorded samples by more than
    missing_sample_thr.

    Returns:
        GapEvents ordered by packet index (empty list if there are none)
    """
    stream_times = np.asarray(timing.stream_times, dtype=np.float64)
    elapsed = np.asarray(timing.elapsed_samples, dtype=np.float64)
    if len(stream_times) < 2:
        return []

    suspect_packets = np.flatnonzero(np.diff(stream_times) > time_diff_thr)

    gaps = []
    for i in suspect_packets:
        timing_diff = stream_times[i + 1] - stream_times[i]
        sample_diff = elapsed[i + 1] - elapsed[i]
        expected_samples = timing_diff * fs
        missing = expected_samples - sample_diff
        if missing > missing_sample_thr:
            gaps.append(GapEvent(int(i), float(missing)))
    return gaps


def silent_block(n_frames: int, like: np.ndarray) -> np.ndarray:
    """Zero-filled block with the channel layout and dtype of `like`."""
    shape = (n_frames,) + like.shape[1:]
    return np.zeros(shape, dtype=like.dtype)


def repair_gaps(
    audio: np.ndarray,
    timing: PacketTimingRecord,
    gaps: list[GapEvent],
) -> np.ndarray:
    """
    Insert silence into the audio at every detected gap.

    Gaps are inserted in reverse packet order so that the sample offsets
    from the timing record stay valid for the gaps still to be inserted.
    Silence that would start beyond the end of the recording is appended.

    Returns:
        New array, longer by the sum of the rounded missing sample counts
    """
    out = np.asarray(audio)
    elapsed = timing.elapsed_samples

    for gap in sorted(gaps, key=lambda g: g.packet_index, reverse=True):
        start_sample = int(elapsed[gap.packet_index + 1])
        silence = silent_block(to_frames(gap.missing_samples), out)
        if start_sample > out.shape[0]:
            out = np.concatenate([out, silence], axis=0)
        else:
            out = np.concatenate([out[:start_sample], silence, out[start_sample:]], axis=0)

    if out is audio:
        out = out.copy()
    return out


def inserted_frames(gaps: list[GapEvent]) -> int:
    """Total number of silent frames repair_gaps() inserts for these gaps."""
    return sum(to_frames(g.missing_samples) for g in gaps)
