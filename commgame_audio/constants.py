# =================================================
# UNDERFLOW DETECTION
# =================================================

# Time difference (seconds) between subsequent audio packets above which a
# buffer underflow is suspected. Roughly double the "normal" packet size.
TIME_DIFF_THR = 0.020

# Number of missing frames after a suspected underflow needed before silence
# is inserted. 225 frames is ~5 ms at 44.1 kHz.
MISSING_SAMPLE_THR = 225

# =================================================
# SAMPLING RATE
# =================================================

# Nominal sampling rate of the recordings (Hz)
FS = 44100

# Tolerated deviation (Hz) of the empirical sampling rate from FS
SAMPLING_TOL = 0.5

# Time axis vs audio length mismatch (frames) tolerated silently at resampling
AXIS_MISMATCH_WARN = 2

# Silence appended before Fourier resampling, cut afterwards (frames)
RESAMPLE_PAD = 4096

# =================================================
# OUTPUT
# =================================================

# Peak level after normalization (1% headroom)
PEAK_LEVEL = 0.99

OUTPUT_SUBTYPE = "PCM_16"

# =================================================
# FILE LAYOUT
# =================================================

# Lab names, always in this order
LAB_NAMES = ("Mordor", "Gondor")

# Reference lab holding the shared (video) start time
VIDEO_LAB = "Mordor"

AUDIO_WAV_TEMPLATE = "pair{pair_no}_{lab}_freeConv_audio.wav"
AUDIO_MAT_TEMPLATE = "pair{pair_no}_{lab}_freeConv_audio.mat"
VIDEO_MAT_TEMPLATE = "pair{pair_no}_{lab}_freeConv_videoTimes.mat"
OUTPUT_WAV_TEMPLATE = "pair{pair_no}_{lab}_freeConv_repaired_mono.wav"

MIN_PAIR_NO = 1
MAX_PAIR_NO = 999
