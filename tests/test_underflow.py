# pylint: disable=missing-module-docstring,missing-function-docstring

import numpy as np

from commgame_audio.timing import PacketTimingRecord
from commgame_audio.underflow import GapEvent, detect_gaps, inserted_frames, repair_gaps

from conftest import FS, PACKET, packet_timing, stereo_tone


def test_no_gaps_in_regular_timing():
    timing = packet_timing(50)

    assert detect_gaps(timing) == []


def test_single_gap_is_detected_at_its_packet():
    timing = packet_timing(50, gaps={10: 300})

    gaps = detect_gaps(timing)

    assert len(gaps) == 1
    assert gaps[0].packet_index == 10
    assert np.isclose(gaps[0].missing_samples, 300.0)


def test_time_jump_below_missing_sample_threshold_is_ignored():
    # 200 missing frames: packet pair spans 18.1 ms, above a 15 ms time threshold
    timing = packet_timing(50, gaps={10: 200})
    assert (timing.stream_times[11] - timing.stream_times[10]) > 0.015

    assert detect_gaps(timing, time_diff_thr=0.015) == []
    assert len(detect_gaps(timing, time_diff_thr=0.015, missing_sample_thr=150)) == 1


def test_missing_samples_without_time_jump_are_ignored():
    # 250 frames lost but the packet pair stays under the time threshold
    timing = packet_timing(50, gaps={10: 250})
    assert (timing.stream_times[11] - timing.stream_times[10]) < 0.020

    assert detect_gaps(timing) == []
    assert len(detect_gaps(timing, time_diff_thr=0.015)) == 1


def test_multiple_gaps_keep_packet_order():
    timing = packet_timing(80, gaps={40: 500, 5: 300, 70: 1000})

    gaps = detect_gaps(timing)

    assert [g.packet_index for g in gaps] == [5, 40, 70]
    assert [round(g.missing_samples) for g in gaps] == [300, 500, 1000]


def test_thresholds_are_configurable():
    timing = packet_timing(50, gaps={10: 300})

    assert detect_gaps(timing, missing_sample_thr=400) == []
    assert len(detect_gaps(timing, time_diff_thr=0.010, missing_sample_thr=100)) == 1


def test_single_packet_record_has_no_gaps():
    timing = PacketTimingRecord(elapsed_samples=np.array([0]), stream_times=np.array([1.0]))

    assert detect_gaps(timing) == []


def test_repair_without_gaps_is_noop():
    audio = stereo_tone(49 * PACKET)
    timing = packet_timing(50)

    out = repair_gaps(audio, timing, detect_gaps(timing))

    np.testing.assert_array_equal(out, audio)
    assert out is not audio


def test_repair_inserts_300_frames_at_packet_10():
    audio = stereo_tone(49 * PACKET)
    timing = packet_timing(50, gaps={10: 300})

    out = repair_gaps(audio, timing, detect_gaps(timing))

    start = timing.elapsed_samples[11]
    assert out.shape == (audio.shape[0] + 300, 2)
    np.testing.assert_array_equal(out[:start], audio[:start])
    assert np.all(out[start:start + 300] == 0.0)
    np.testing.assert_array_equal(out[start + 300:], audio[start:])


def test_repair_length_grows_by_sum_of_rounded_gaps():
    audio = stereo_tone(79 * PACKET)
    timing = packet_timing(80, gaps={5: 300.4, 40: 500.6, 70: 1000})

    gaps = detect_gaps(timing)
    out = repair_gaps(audio, timing, gaps)

    assert inserted_frames(gaps) == 300 + 501 + 1000
    assert out.shape[0] == audio.shape[0] + inserted_frames(gaps)


def test_repair_keeps_mono_layout():
    audio = np.ones(20 * PACKET)
    timing = packet_timing(21, gaps={3: 400})

    out = repair_gaps(audio, timing, detect_gaps(timing))

    assert out.ndim == 1
    assert out.shape[0] == audio.shape[0] + 400


def test_gap_past_end_of_recording_is_appended():
    # recording stopped before the packet following the gap was written
    audio = stereo_tone(10 * PACKET)
    timing = packet_timing(30)
    gap = GapEvent(packet_index=20, missing_samples=256.0)

    out = repair_gaps(audio, timing, [gap])

    np.testing.assert_array_equal(out[:audio.shape[0]], audio)
    assert np.all(out[audio.shape[0]:] == 0.0)
    assert out.shape[0] == audio.shape[0] + 256


def test_reverse_order_matches_forward_pass_with_shifted_offsets():
    audio = stereo_tone(79 * PACKET)
    timing = packet_timing(80, gaps={5: 300, 40: 500, 70: 1000})
    gaps = detect_gaps(timing)

    # forward pass, shifting every offset by the silence already inserted
    expected = audio
    shift = 0
    for gap in gaps:
        start = timing.elapsed_samples[gap.packet_index + 1] + shift
        n = int(round(gap.missing_samples))
        expected = np.concatenate([expected[:start], np.zeros((n, 2)), expected[start:]])
        shift += n

    np.testing.assert_array_equal(repair_gaps(audio, timing, gaps), expected)


def test_gap_order_in_input_does_not_matter():
    audio = stereo_tone(79 * PACKET)
    timing = packet_timing(80, gaps={5: 300, 40: 500})
    gaps = detect_gaps(timing)

    np.testing.assert_array_equal(
        repair_gaps(audio, timing, gaps),
        repair_gaps(audio, timing, list(reversed(gaps))),
    )


def test_expected_samples_follow_nominal_rate():
    timing = packet_timing(50, gaps={10: 300})

    # at half the rate the same time jump accounts for fewer frames
    gaps = detect_gaps(timing, fs=FS // 2)

    assert gaps == []


def test_half_frame_gap_rounds_up():
    audio = np.ones(10 * PACKET)
    timing = packet_timing(11)
    gap = GapEvent(packet_index=3, missing_samples=300.5)

    out = repair_gaps(audio, timing, [gap])

    assert inserted_frames([gap]) == 301
    assert out.shape[0] == audio.shape[0] + 301
