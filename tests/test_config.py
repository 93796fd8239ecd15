"""Tests for scanner configuration loading and validation."""

import textwrap

import pytest

from rf_scanner.bands import DEFAULT_RULES
from rf_scanner.config import (
    DEFAULT_FRAME_DURATION,
    ScannerConfig,
    config_from_mapping,
    load_config,
    validate_config_yaml,
)


class TestDefaults:
    def test_documented_defaults(self) -> None:
        config = ScannerConfig()
        assert config.sample_rate == 2_000_000
        assert config.block_size == 16_384
        assert config.threshold == -40.0
        assert config.bandwidth_margin == 3.0
        assert config.history_capacity == 100
        assert config.frame_tolerance == 0.1
        assert config.frame_duration == pytest.approx(0.0141667, rel=1e-4)
        assert config.rules == DEFAULT_RULES

    def test_frame_duration_is_tetra_timeslot(self) -> None:
        assert DEFAULT_FRAME_DURATION * 18_000 == pytest.approx(255)


class TestReplace:
    def test_none_values_skipped(self) -> None:
        config = ScannerConfig().replace(threshold=None, block_size=4096)
        assert config.threshold == -40.0
        assert config.block_size == 4096

    def test_base_unchanged(self) -> None:
        base = ScannerConfig()
        base.replace(block_size=4096)
        assert base.block_size == 16_384

    @pytest.mark.parametrize("overrides", [
        {"sample_rate": 0},
        {"block_size": -1},
        {"history_capacity": 0},
        {"frame_tolerance": 0},
        {"scan_step": 0},
        {"settle_time": -0.1},
        {"scan_start": 500e6},
        {"bandwidth_margin": 6.0},
        {"frame_duration": 1e-7},
    ])
    def test_invalid_values(self, overrides) -> None:
        with pytest.raises(ValueError, match="Invalid config"):
            ScannerConfig().replace(**overrides)


class TestFrameDuration:
    """The expected frame must span at least one sample."""

    def test_sub_sample_frame_rejected(self) -> None:
        with pytest.raises(ValueError, match="frame_duration"):
            ScannerConfig(block_size=1024, frame_duration=1e-7)

    def test_one_sample_frame_accepted(self) -> None:
        config = ScannerConfig(sample_rate=2_000_000, frame_duration=1 / 2_000_000)
        assert config.frame_duration == pytest.approx(5e-7)

    def test_depends_on_sample_rate(self) -> None:
        ScannerConfig(frame_duration=1e-6)
        with pytest.raises(ValueError, match="shorter than one sample"):
            ScannerConfig(sample_rate=250_000, frame_duration=1e-6)

    def test_rejected_from_yaml(self, tmp_path) -> None:
        path = tmp_path / "short.yaml"
        path.write_text("frame_duration: 1.0e-7\n", encoding="utf-8")
        with pytest.raises(ValueError, match="frame_duration"):
            load_config(path)


class TestLoadConfig:
    def test_load_overrides(self, tmp_path) -> None:
        path = tmp_path / "scanner.yaml"
        path.write_text(textwrap.dedent("""\
            threshold: -35.5
            block_size: 8192
            scan_start: 410000000
            scan_end: 430000000
        """), encoding="utf-8")
        config = load_config(path)
        assert config.threshold == -35.5
        assert config.block_size == 8192
        assert isinstance(config.block_size, int)
        assert config.scan_start == 410e6
        assert config.sample_rate == 2_000_000

    def test_load_classification(self, tmp_path) -> None:
        path = tmp_path / "scanner.yaml"
        path.write_text(textwrap.dedent("""\
            classification:
            - label: PMR/DMR
              frequency_range: [446000000, 446200000]
        """), encoding="utf-8")
        config = load_config(path)
        assert [r.label for r in config.rules] == ["PMR/DMR"]

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == ScannerConfig()

    def test_file_not_found(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_out_of_range_value(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("history_capacity: 0\n", encoding="utf-8")
        with pytest.raises(ValueError, match="history_capacity"):
            load_config(path)


class TestValidateConfigYaml:
    def test_not_a_mapping(self) -> None:
        with pytest.raises(ValueError, match="expected a mapping"):
            validate_config_yaml([1, 2])

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="unknown key"):
            validate_config_yaml({"fft_size": 1024})

    def test_rules_key_not_accepted(self) -> None:
        with pytest.raises(ValueError, match="unknown key"):
            validate_config_yaml({"rules": []})

    def test_not_a_number(self) -> None:
        with pytest.raises(ValueError, match="not a number"):
            validate_config_yaml({"threshold": "-40"})

    def test_bool_is_not_a_number(self) -> None:
        with pytest.raises(ValueError, match="not a number"):
            validate_config_yaml({"gain": True})

    def test_whole_number_required(self) -> None:
        with pytest.raises(ValueError, match="whole number"):
            validate_config_yaml({"block_size": 1024.5})

    def test_bad_classification(self) -> None:
        with pytest.raises(ValueError):
            config_from_mapping({"classification": "TETRA"})
