"""
Sampling Rate Drift
===================
Sound cards do not all run at exactly the nominal rate. The empirical
sampling rate is estimated from the (underflow-repaired) number of samples
and the stream time elapsed while recording. Audio deviating more than the
tolerance is resampled to the nominal rate.
"""

import numpy as np
from scipy.signal import resample

from .constants import AXIS_MISMATCH_WARN, FS, RESAMPLE_PAD, SAMPLING_TOL
from .pipeline_log import PipelineLogger
from .timing import PacketTimingRecord
from .underflow import silent_block


def estimate_sampling_rate(n_samples: int, timing: PacketTimingRecord) -> float:
    """Samples recorded per second of elapsed stream time."""
    total_time = timing.total_time
    if len(timing) < 2 or total_time <= 0:
        raise ValueError(
            f"Cannot estimate sampling rate: need at least two packets spanning "
            f"a positive stream time (got {len(timing)} packets, {total_time} s)"
        )
    return n_samples / total_time


def build_time_axis(
    n_samples: int,
    fs_emp: float,
    total_time: float,
    logger: PipelineLogger | None = None,
    label: str = "",
) -> np.ndarray:
    """
    Uniform time axis at the empirical rate, covering [0, total_time].

    Numeric errors may leave the axis a few points off from the audio
    length. The axis is cut (or continued at the same spacing) to match the
    audio, with a warning if the difference is larger than AXIS_MISMATCH_WARN.
    """
    n_points = int(np.floor(total_time * fs_emp + 1e-6)) + 1
    time_axis = np.arange(n_points) / fs_emp

    if n_points != n_samples:
        if abs(n_points - n_samples) > AXIS_MISMATCH_WARN and logger is not None:
            logger.warn(
                f"At the resampling step for {label or 'audio'}, audio data size is "
                f"{n_samples} while estimated time points is a vector of length {n_points}!"
            )
        if n_points > n_samples:
            time_axis = time_axis[:n_samples]
        else:
            time_axis = np.arange(n_samples) / fs_emp

    return time_axis


def resample_to_nominal(audio: np.ndarray, time_axis: np.ndarray, fs: int = FS) -> np.ndarray:
    """
    Band-limited (Fourier) resampling from the sample times in time_axis to
    a uniform grid at fs. Works along axis 0, so stereo is kept as stereo.

    The FFT treats the recording as periodic. RESAMPLE_PAD frames of silence
    are appended before resampling and cut afterwards, so the tail does not
    wrap around into the head.
    """
    n = audio.shape[0]
    if n < 2:
        return np.array(audio, dtype=np.float64, copy=True)

    spacing = (time_axis[-1] - time_axis[0]) / (n - 1)
    num = int(round(n * fs * spacing))

    padded = np.concatenate([audio, silent_block(RESAMPLE_PAD, audio)], axis=0)
    padded_axis = time_axis[0] + np.arange(padded.shape[0]) * spacing
    resampled, _ = resample(padded, int(round(padded.shape[0] * fs * spacing)), t=padded_axis, axis=0)
    return resampled[:num]


def correct_drift(
    audio: np.ndarray,
    timing: PacketTimingRecord,
    fs: int = FS,
    sampling_tol: float = SAMPLING_TOL,
    logger: PipelineLogger | None = None,
    label: str = "",
) -> tuple[np.ndarray, float, bool]:
    """
    Resample audio to fs if its empirical sampling rate is off by more than
    sampling_tol Hz.

    Returns:
        Tuple of (audio, empirical sampling rate, whether it was resampled)
    """
    fs_emp = estimate_sampling_rate(audio.shape[0], timing)
    if logger is not None:
        logger.log(f"Estimated sampling frequency for {label or 'audio'}: {fs_emp:.4f} Hz")

    if abs(fs_emp - fs) <= sampling_tol:
        return audio, fs_emp, False

    time_axis = build_time_axis(audio.shape[0], fs_emp, timing.total_time, logger, label)
    resampled = resample_to_nominal(audio, time_axis, fs)
    if logger is not None:
        logger.log(f"Resampled {label or 'audio'} to nominal ({fs} Hz) sampling frequency")
    return resampled, fs_emp, True
