import numpy as np

from .constants import FS, PEAK_LEVEL
from .pipeline_log import PipelineLogger
from .timing import to_frames


def trim_to_start(
    audio: np.ndarray,
    first_frame_time: float,
    shared_start_time: float,
    fs: int = FS,
) -> np.ndarray:
    """
    Drop the audio recorded before shared_start_time.

    Sampling rate issues are fixed by this point, so fs is used to convert
    the start difference to frames.
    """
    start_diff = shared_start_time - first_frame_time
    if start_diff <= 0:
        raise ValueError(
            f"Insane audio versus task and video start times! Audio started at "
            f"{first_frame_time}, shared start time is {shared_start_time}"
        )
    return audio[to_frames(start_diff * fs):]


def to_mono(audio: np.ndarray) -> np.ndarray:
    # If already mono, return as-is
    if audio.ndim == 1:
        return audio
    # Average channels (L+R)/2
    return np.mean(audio, axis=1)


def normalize_peak(
    audio: np.ndarray,
    peak: float = PEAK_LEVEL,
    logger: PipelineLogger | None = None,
    label: str = "",
) -> np.ndarray:
    """Scale audio so that max(|audio|) == peak. Silent or empty audio is returned unscaled."""
    if audio.size == 0:
        if logger is not None:
            logger.warn(f"{label or 'Audio'} is empty after trimming, nothing to normalize")
        return audio

    peak_in = float(np.max(np.abs(audio)))
    if peak_in == 0.0:
        if logger is not None:
            logger.warn(f"{label or 'Audio'} is silent, skipping normalization")
        return audio

    return audio * (peak / peak_in)


def equalize_lengths(a: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Trim the longer of the two arrays to the length of the shorter."""
    n = min(a.shape[0], b.shape[0])
    return a[:n], b[:n]


def align_channel(
    audio: np.ndarray,
    first_frame_time: float,
    shared_start_time: float,
    fs: int = FS,
    peak: float = PEAK_LEVEL,
    logger: PipelineLogger | None = None,
    label: str = "",
) -> np.ndarray:
    """Trim to the shared start, mix to mono and peak-normalize one channel."""
    trimmed = trim_to_start(audio, first_frame_time, shared_start_time, fs)
    return normalize_peak(to_mono(trimmed), peak, logger, label)


def align_channels(
    mordor: np.ndarray,
    mordor_first_frame: float,
    gondor: np.ndarray,
    gondor_first_frame: float,
    shared_start_time: float,
    fs: int = FS,
    peak: float = PEAK_LEVEL,
    logger: PipelineLogger | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Align both recordings to the shared start time.

    Returns:
        Tuple of (mordor, gondor) mono, normalized arrays of identical length
    """
    mordor = align_channel(mordor, mordor_first_frame, shared_start_time, fs, peak, logger, "Mordor")
    gondor = align_channel(gondor, gondor_first_frame, shared_start_time, fs, peak, logger, "Gondor")

    if mordor.shape[0] != gondor.shape[0]:
        mordor, gondor = equalize_lengths(mordor, gondor)
        if logger is not None:
            logger.log("Audio channel length values adjusted (trimmed to the shorter)")
    return mordor, gondor
