"""Tests for the bounded spectral history."""

import numpy as np
import pytest

from rf_scanner.history import DEFAULT_CAPACITY, SpectralHistory


def _spectrum(value: float) -> np.ndarray:
    return np.full(8, value)


class TestSpectralHistory:
    def test_default_capacity(self) -> None:
        assert SpectralHistory().capacity == DEFAULT_CAPACITY == 100

    def test_empty(self) -> None:
        history = SpectralHistory(3)
        assert len(history) == 0
        assert history.snapshot() == []

    def test_keeps_insertion_order(self) -> None:
        history = SpectralHistory(3)
        for v in (1.0, 2.0):
            history.append(_spectrum(v))
        assert [s[0] for s in history.snapshot()] == [1.0, 2.0]

    def test_evicts_oldest_when_full(self) -> None:
        history = SpectralHistory(3)
        for v in range(5):
            history.append(_spectrum(float(v)))
        assert len(history) == 3
        assert [s[0] for s in history.snapshot()] == [2.0, 3.0, 4.0]

    def test_never_exceeds_capacity(self) -> None:
        history = SpectralHistory(DEFAULT_CAPACITY)
        for v in range(250):
            history.append(_spectrum(float(v)))
            assert len(history) <= DEFAULT_CAPACITY
        assert history.snapshot()[0][0] == 150.0

    def test_snapshot_is_a_copy(self) -> None:
        history = SpectralHistory(2)
        history.append(_spectrum(1.0))
        snap = history.snapshot()
        history.append(_spectrum(2.0))
        history.append(_spectrum(3.0))
        assert [s[0] for s in snap] == [1.0]
        snap.clear()
        assert len(history) == 2

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity) -> None:
        with pytest.raises(ValueError):
            SpectralHistory(capacity)
