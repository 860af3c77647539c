# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path

import numpy as np
import pytest
import soundfile as sf
from scipy.io import savemat

from commgame_audio.timing import PacketTimingRecord

FS = 44100
PACKET = 600  # frames per audio packet, ~13.6 ms at 44.1 kHz


def packet_timing(n_packets: int, gaps: dict[int, int] | None = None, t0: float = 0.0) -> PacketTimingRecord:
    """
    Timing record for regularly spaced packets.

    gaps maps a packet index to a number of frames lost after that packet:
    the stream time jumps ahead while the elapsed sample count does not.
    """
    gaps = gaps or {}
    elapsed = np.arange(n_packets, dtype=np.int64) * PACKET
    times = t0 + elapsed / FS
    for idx, missing in gaps.items():
        times[idx + 1:] += missing / FS
    return PacketTimingRecord(elapsed_samples=elapsed, stream_times=times)


def stereo_tone(n_frames: int, freq: float = 440.0, amp: float = 0.5) -> np.ndarray:
    t = np.arange(n_frames) / FS
    left = amp * np.sin(2 * np.pi * freq * t)
    right = 0.5 * amp * np.sin(2 * np.pi * freq * 1.5 * t)
    return np.column_stack([left, right])


def write_lab(folder: Path, pair_no: int, lab: str, audio: np.ndarray, timing: PacketTimingRecord,
              first_frame_time: float, fs: int = FS) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    sf.write(str(folder / f"pair{pair_no}_{lab}_freeConv_audio.wav"), audio, fs, subtype="FLOAT")
    tstats = np.vstack([timing.elapsed_samples.astype(np.float64), timing.stream_times])
    savemat(str(folder / f"pair{pair_no}_{lab}_freeConv_audio.mat"),
            {'perf': {'firstFrameTiming': first_frame_time, 'tstats': tstats}})


def write_video_times(folder: Path, pair_no: int, shared_start_time: float) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    savemat(str(folder / f"pair{pair_no}_Mordor_freeConv_videoTimes.mat"),
            {'sharedStartTime': shared_start_time})


@pytest.fixture
def pair_dir(tmp_path: Path):
    """
    Pair 7 laid out the way the task saves it, one subfolder per lab:
    - Mordor: 300 frames lost after packet 10, nominal rate
    - Gondor: no underflow, 100 extra frames (sound card running fast)
    """
    n_packets = 151
    n_frames = (n_packets - 1) * PACKET

    mordor_timing = packet_timing(n_packets, gaps={10: 300}, t0=100.0)
    write_lab(tmp_path / "Mordor", 7, "Mordor", stereo_tone(n_frames), mordor_timing, first_frame_time=100.0)

    gondor_timing = packet_timing(n_packets, t0=100.2)
    write_lab(tmp_path / "Gondor", 7, "Gondor", stereo_tone(n_frames + 100, freq=220.0), gondor_timing,
              first_frame_time=100.2)

    write_video_times(tmp_path / "Mordor", 7, shared_start_time=100.5)
    return tmp_path
