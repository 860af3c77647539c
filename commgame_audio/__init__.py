# Audio repair for the CommGame free conversation recordings

from .timing import (
    PacketTimingRecord,
    load_audio_metadata,
    load_shared_start_time,
)

from .underflow import (
    GapEvent,
    detect_gaps,
    repair_gaps,
    inserted_frames,
)

from .drift import (
    estimate_sampling_rate,
    build_time_axis,
    resample_to_nominal,
    correct_drift,
)

from .alignment import (
    trim_to_start,
    to_mono,
    normalize_peak,
    equalize_lengths,
    align_channels,
)

from .repair import (
    ChannelContext,
    find_pair_files,
    repair_pair,
    write_repaired_audio,
)

from .pipeline_log import PipelineLogger

__all__ = [
    # Timing
    'PacketTimingRecord',
    'load_audio_metadata',
    'load_shared_start_time',
    # Underflows
    'GapEvent',
    'detect_gaps',
    'repair_gaps',
    'inserted_frames',
    # Drift
    'estimate_sampling_rate',
    'build_time_axis',
    'resample_to_nominal',
    'correct_drift',
    # Alignment
    'trim_to_start',
    'to_mono',
    'normalize_peak',
    'equalize_lengths',
    'align_channels',
    # Pair level
    'ChannelContext',
    'find_pair_files',
    'repair_pair',
    'write_repaired_audio',
    'PipelineLogger',
]
