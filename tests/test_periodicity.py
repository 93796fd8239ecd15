"""Tests for the TDMA periodicity correlator."""

import numpy as np
import pytest

from rf_scanner.periodicity import (
    autocorrelation,
    block_size_for_frames,
    correlation_peaks,
    detect_tdma_frames,
    expected_frame_samples,
    lag_window_holds_frames,
)

N = 4096
PERIOD = 512
WIDTH = 64


def _direct_autocorrelation(block: np.ndarray, max_lag: int) -> np.ndarray:
    n = len(block)
    return np.array([
        np.sum(block[: n - i] * np.conj(block[i:])) for i in range(max_lag)
    ])


class TestAutocorrelation:
    """FFT autocorrelation against the direct sum."""

    def test_matches_direct_sum(self) -> None:
        rng = np.random.default_rng(7)
        block = rng.standard_normal(256) + 1j * rng.standard_normal(256)
        fast = autocorrelation(block)
        slow = _direct_autocorrelation(block, 128)
        assert len(fast) == 128
        np.testing.assert_allclose(fast, slow, atol=1e-9)

    def test_matches_direct_sum_odd_length(self) -> None:
        rng = np.random.default_rng(11)
        block = rng.standard_normal(101) + 1j * rng.standard_normal(101)
        np.testing.assert_allclose(
            autocorrelation(block), _direct_autocorrelation(block, 50), atol=1e-9,
        )

    def test_zero_lag_is_energy(self, make_pulse_train) -> None:
        block = make_pulse_train(N, PERIOD, WIDTH)
        corr = autocorrelation(block)
        assert corr[0] == pytest.approx(np.sum(np.abs(block) ** 2))

    def test_max_lag(self) -> None:
        block = np.ones(64, dtype=complex)
        assert len(autocorrelation(block, max_lag=10)) == 10
        assert len(autocorrelation(block, max_lag=1000)) == 64

    def test_empty_block(self) -> None:
        assert len(autocorrelation(np.zeros(0, dtype=complex))) == 0


class TestCorrelationPeaks:
    def test_strict_maxima_only(self) -> None:
        assert correlation_peaks(np.array([0, 1, 0, 2, 2, 0, 3, 1])) == [1, 6]

    def test_edges_excluded(self) -> None:
        assert correlation_peaks(np.array([5, 1, 5])) == []

    def test_short_input(self) -> None:
        assert correlation_peaks(np.array([1.0, 2.0])) == []


class TestDetectTdmaFrames:
    """Decisions on constructed blocks."""

    def test_pulse_train_detected(self, make_pulse_train) -> None:
        assert detect_tdma_frames(make_pulse_train(N, PERIOD, WIDTH), PERIOD)

    def test_pulse_train_peaks_at_frame_multiples(self, make_pulse_train) -> None:
        magnitude = np.abs(autocorrelation(make_pulse_train(N, PERIOD, WIDTH)))
        magnitude[magnitude < 1e-9 * magnitude[0]] = 0.0
        assert correlation_peaks(magnitude) == [512, 1024, 1536]

    def test_wrong_period_rejected(self, make_pulse_train) -> None:
        assert not detect_tdma_frames(make_pulse_train(N, PERIOD, WIDTH), 800)

    def test_within_tolerance(self, make_pulse_train) -> None:
        """A spacing of 512 is within 10 % of 540."""
        assert detect_tdma_frames(make_pulse_train(N, PERIOD, WIDTH), 540)

    def test_tolerance_bounds_spacing(self, make_pulse_train) -> None:
        block = make_pulse_train(N, PERIOD, WIDTH)
        assert not detect_tdma_frames(block, 640, tolerance=0.19)
        assert detect_tdma_frames(block, 640, tolerance=0.21)

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_noise_not_detected(self, seed) -> None:
        rng = np.random.default_rng(seed)
        block = rng.standard_normal(N) + 1j * rng.standard_normal(N)
        assert not detect_tdma_frames(block, PERIOD)

    def test_zero_block(self) -> None:
        assert not detect_tdma_frames(np.zeros(N, dtype=complex), PERIOD)

    def test_block_too_short(self, make_pulse_train) -> None:
        """A lag window shorter than two frames cannot show the spacing."""
        block = make_pulse_train(1024, PERIOD, WIDTH)
        assert not detect_tdma_frames(block, PERIOD)

    @pytest.mark.parametrize("frame_samples", [0, -5])
    def test_invalid_frame_length(self, frame_samples) -> None:
        with pytest.raises(ValueError):
            detect_tdma_frames(np.ones(16, dtype=complex), frame_samples)


class TestExpectedFrameSamples:
    def test_tetra_timeslot(self) -> None:
        assert expected_frame_samples(255 / 18_000, 2_000_000) == 28_333

    def test_exact(self) -> None:
        assert expected_frame_samples(512 / 2e6, 2e6) == 512


class TestLagWindow:
    """Block sizes able to show two frame spacings."""

    @pytest.mark.parametrize("block_size, frame_samples, expected", [
        (4096, 512, True),
        (1024, 512, False),
        (4096, 1023, True),
        (4096, 1024, False),
        (16_384, 28_333, False),
        (131_072, 28_333, True),
    ])
    def test_holds_frames(self, block_size, frame_samples, expected) -> None:
        assert lag_window_holds_frames(block_size, frame_samples) is expected

    @pytest.mark.parametrize("frame_samples", [1, 100, 512, 1023, 1024, 28_333])
    def test_smallest_power_of_two(self, frame_samples) -> None:
        size = block_size_for_frames(frame_samples)
        assert size & (size - 1) == 0
        assert lag_window_holds_frames(size, frame_samples)
        assert not lag_window_holds_frames(size // 2, frame_samples)

    def test_tetra_timeslot_at_default_rate(self) -> None:
        assert block_size_for_frames(28_333) == 131_072

    def test_sized_block_detects(self, make_pulse_train) -> None:
        size = block_size_for_frames(700)
        assert detect_tdma_frames(make_pulse_train(size, 700, WIDTH), 700)
