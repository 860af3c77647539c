"""
Audio Packet Timing
===================
Per-recording timing metadata saved out by the CommGame task:
- perf.tstats: 2 x N matrix, elapsed samples (row 0) and stream time (row 1)
  for every received audio packet
- perf.firstFrameTiming: timestamp of the first recorded audio frame
- sharedStartTime: common start time from the video recording
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from scipy.io import loadmat


@dataclass(frozen=True)
class PacketTimingRecord:
    """Elapsed sample counts and stream times, one entry per audio packet."""
    elapsed_samples: np.ndarray
    stream_times: np.ndarray

    @classmethod
    def from_tstats(cls, tstats) -> 'PacketTimingRecord':
        tstats = np.asarray(tstats, dtype=np.float64)
        if tstats.ndim == 1:
            # a single packet gets squeezed to shape (rows,)
            tstats = tstats.reshape(-1, 1)
        if tstats.shape[0] < 2:
            raise ValueError(f"Expected at least 2 rows in tstats, got shape {tstats.shape}")
        return cls(
            elapsed_samples=tstats[0, :].astype(np.int64),
            stream_times=tstats[1, :].copy(),
        )

    def __len__(self) -> int:
        return len(self.stream_times)

    @property
    def total_time(self) -> float:
        """Stream time elapsed between the first and the last packet."""
        if len(self) == 0:
            return 0.0
        return float(self.stream_times[-1] - self.stream_times[0])


def load_audio_metadata(mat_path: Path) -> tuple[float, PacketTimingRecord]:
    """
    Load the audio recording metadata of one lab.

    Args:
        mat_path: Path to a pair*_<lab>_freeConv_audio.mat file

    Returns:
        Tuple of (first frame timestamp, packet timing record)
    """
    data = loadmat(str(mat_path), squeeze_me=True, struct_as_record=False)
    if 'perf' not in data:
        raise ValueError(f"No 'perf' struct found in {mat_path}")
    perf = data['perf']
    first_frame_time = float(perf.firstFrameTiming)
    timing = PacketTimingRecord.from_tstats(perf.tstats)
    return first_frame_time, timing


def load_shared_start_time(mat_path: Path) -> float:
    """Load sharedStartTime from a pair*_freeConv_videoTimes.mat file."""
    data = loadmat(str(mat_path), squeeze_me=True)
    if 'sharedStartTime' not in data:
        raise ValueError(f"No 'sharedStartTime' variable found in {mat_path}")
    return float(data['sharedStartTime'])


def to_frames(x: float) -> int:
    """Round a non-negative frame count half away from zero (2.5 -> 3)."""
    return int(np.floor(x + 0.5))
