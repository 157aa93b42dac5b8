"""Tests for icmpcheck.config loading, defaults and validation."""

import json
from datetime import timedelta

import pytest

from icmpcheck.config import (
    DEFAULT_PING_COUNT,
    DEFAULT_PING_TIMEOUT,
    MAX_INTERVAL,
    Config,
    Target,
    load_config,
    load_config_file,
    parse_duration,
)
from icmpcheck.errors import ConfigurationError


class TestParseDuration:
    """Test Go-style duration parsing."""

    def test_seconds(self):
        """Test plain seconds suffix."""
        assert parse_duration("5s") == timedelta(seconds=5)

    def test_milliseconds_not_confused_with_minutes(self):
        """Test that 'ms' is not read as minutes."""
        assert parse_duration("500ms") == timedelta(milliseconds=500)

    def test_compound(self):
        """Test compound durations add up."""
        assert parse_duration("1m30s") == timedelta(seconds=90)
        assert parse_duration("1h2m") == timedelta(minutes=62)

    def test_fractional(self):
        """Test fractional amounts."""
        assert parse_duration("2.5s") == timedelta(seconds=2.5)

    def test_microseconds(self):
        """Test both spellings of microseconds."""
        assert parse_duration("250us") == timedelta(microseconds=250)
        assert parse_duration("250µs") == timedelta(microseconds=250)

    def test_numbers_are_seconds(self):
        """Test numeric values are interpreted as seconds."""
        assert parse_duration(2) == timedelta(seconds=2)
        assert parse_duration(0.5) == timedelta(milliseconds=500)

    def test_timedelta_passthrough(self):
        """Test timedelta values are returned unchanged."""
        value = timedelta(seconds=3)
        assert parse_duration(value) is value

    def test_zero_and_negative(self):
        """Test zero and negative values parse (validation rejects them later)."""
        assert parse_duration("0") == timedelta(0)
        assert parse_duration("-1s") == timedelta(seconds=-1)

    @pytest.mark.parametrize(
        "value",
        ["", "5", "abc", "5 s", "s5", "5d", None, True, [1], "99999999999h", 1e20, float("nan"), float("inf")],
    )
    def test_invalid(self, value):
        """Test malformed durations raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="invalid duration"):
            parse_duration(value)


class TestTargetDefaults:
    """Test optional overrides fall back to the documented defaults."""

    def test_defaults_without_overrides(self):
        """Test a bare target uses 3 requests and a 5 second session."""
        target = Target("example.com")

        assert target.ping_count is None
        assert target.ping_timeout is None
        assert target.count == DEFAULT_PING_COUNT == 3
        assert target.timeout == DEFAULT_PING_TIMEOUT == timedelta(seconds=5)

    def test_overrides(self):
        """Test explicit overrides are used as given."""
        target = Target("example.com", ping_count=7, ping_timeout=timedelta(seconds=2))

        assert target.count == 7
        assert target.timeout == timedelta(seconds=2)

    def test_explicit_zero_rejected(self):
        """Test an explicit zero is an error, not a fallback to the default."""
        with pytest.raises(ConfigurationError, match="ping_count must be positive"):
            Target("example.com", ping_count=0).validate()

        with pytest.raises(ConfigurationError, match="ping_timeout must be positive"):
            Target("example.com", ping_timeout=timedelta(0)).validate()

    def test_blank_address_rejected(self):
        """Test blank addresses are rejected."""
        with pytest.raises(ConfigurationError, match="non-empty"):
            Target("   ").validate()


class TestConfigValidation:
    """Test Config invariants."""

    def test_default_interval_is_one_minute(self):
        """Test the default sweep interval."""
        config = Config()
        assert config.interval == timedelta(minutes=1)
        assert config.interval_ms == 60000
        assert config.targets == ()

    def test_negative_interval_rejected(self):
        """Test a negative interval is fatal."""
        with pytest.raises(ConfigurationError, match="interval must be positive"):
            Config(interval=timedelta(seconds=-1)).validate()

    def test_zero_interval_rejected(self):
        """Test a zero interval is fatal."""
        with pytest.raises(ConfigurationError, match="interval must be positive"):
            Config(interval=timedelta(0)).validate()

    def test_interval_ms_at_least_one(self):
        """Test sub-millisecond intervals still produce a running timer."""
        assert Config(interval=timedelta(microseconds=10)).interval_ms == 1

    def test_longest_timer_interval_accepted(self):
        """Test the largest interval the timer can hold is valid."""
        config = Config(interval=MAX_INTERVAL)
        config.validate()
        assert config.interval_ms == 2**31 - 1

    def test_interval_beyond_timer_range_rejected(self):
        """Test intervals longer than the timer can hold are fatal."""
        with pytest.raises(ConfigurationError, match="interval must not exceed"):
            Config(interval=MAX_INTERVAL + timedelta(milliseconds=1)).validate()


class TestLoadConfig:
    """Test building Config from the external mapping form."""

    def test_full_mapping(self):
        """Test all fields are parsed and order is preserved."""
        config = load_config(
            {
                "interval": "10s",
                "targets": [
                    {"target": "10.0.0.1", "ping_count": 2, "ping_timeout": "1s"},
                    {"target": "example.com"},
                ],
            }
        )

        assert config.interval == timedelta(seconds=10)
        assert [t.address for t in config.targets] == ["10.0.0.1", "example.com"]
        assert config.targets[0].count == 2
        assert config.targets[0].timeout == timedelta(seconds=1)
        assert config.targets[1].ping_count is None
        assert config.targets[1].timeout == timedelta(seconds=5)

    def test_missing_interval_uses_default(self):
        """Test interval defaults to one minute."""
        config = load_config({"targets": []})
        assert config.interval == timedelta(minutes=1)

    def test_string_target_shorthand(self):
        """Test a bare string is accepted as a target address."""
        config = load_config({"targets": ["example.com"]})
        assert config.targets == (Target("example.com"),)

    def test_missing_target_field(self):
        """Test the error names the offending target."""
        with pytest.raises(ConfigurationError, match=r"targets\[1\]\.target is required"):
            load_config({"targets": [{"target": "a"}, {"ping_count": 1}]})

    def test_bad_ping_count_type(self):
        """Test non-integer ping counts are rejected."""
        with pytest.raises(ConfigurationError, match=r"targets\[0\]\.ping_count must be an integer"):
            load_config({"targets": [{"target": "a", "ping_count": "3"}]})

    def test_bad_ping_timeout(self):
        """Test malformed ping timeouts name the field."""
        with pytest.raises(ConfigurationError, match=r"targets\[0\]\.ping_timeout"):
            load_config({"targets": [{"target": "a", "ping_timeout": "soon"}]})

    def test_negative_interval(self):
        """Test negative interval from mapping is fatal."""
        with pytest.raises(ConfigurationError, match="interval must be positive"):
            load_config({"interval": "-5s", "targets": []})

    def test_interval_too_long(self):
        """Test a month-long interval is rejected at load time."""
        with pytest.raises(ConfigurationError, match="interval must not exceed"):
            load_config({"interval": "720h", "targets": ["10.0.0.1"]})

    def test_out_of_range_interval(self):
        """Test overflowing intervals are configuration errors."""
        with pytest.raises(ConfigurationError, match="interval: invalid duration"):
            load_config({"interval": "99999999999h", "targets": []})

    def test_targets_must_be_list(self):
        """Test targets of the wrong type are rejected."""
        with pytest.raises(ConfigurationError, match="targets must be a list"):
            load_config({"targets": {"target": "a"}})

    def test_not_a_mapping(self):
        """Test a non-object configuration is rejected."""
        with pytest.raises(ConfigurationError):
            load_config(["a"])

    def test_configuration_error_is_value_error(self):
        """Test ConfigurationError can be handled as ValueError."""
        with pytest.raises(ValueError):
            load_config({"interval": "0s"})


class TestLoadConfigFile:
    """Test JSON file loading."""

    def test_load_file(self, tmp_path):
        """Test a valid file loads."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"interval": "1s", "targets": [{"target": "127.0.0.1"}]}))

        config = load_config_file(str(path))

        assert config.interval == timedelta(seconds=1)
        assert config.targets[0].address == "127.0.0.1"

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="cannot read config file"):
            load_config_file(str(tmp_path / "missing.json"))

    def test_non_finite_interval(self, tmp_path):
        """Test NaN accepted by the JSON parser is still a configuration error."""
        path = tmp_path / "config.json"
        path.write_text('{"interval": NaN, "targets": []}')

        with pytest.raises(ConfigurationError, match="invalid duration"):
            load_config_file(str(path))

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises ConfigurationError."""
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="invalid JSON"):
            load_config_file(str(path))
