"""Tests for modes and the YAML configuration."""

import pytest
import yaml

from hookgate import __version__
from hookgate.checks import Build, Coverage, Test
from hookgate.core.config import (
    Config,
    Mode,
    ModeSettings,
    default_config,
    is_compatible,
    load_config,
    load_config_file,
    parse_modes,
)
from hookgate.core.errors import ConfigError


class TestModes:
    """Test mode parsing."""

    def test_full_names(self):
        assert parse_modes("pre-commit,lint") == [Mode.PRE_COMMIT, Mode.LINT]

    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("fast", [Mode.PRE_COMMIT]),
            ("pc", [Mode.PRE_COMMIT]),
            ("slow", [Mode.PRE_PUSH]),
            ("pp", [Mode.PRE_PUSH]),
            ("full", [Mode.CONTINUOUS_INTEGRATION]),
            ("ci", [Mode.CONTINUOUS_INTEGRATION]),
            ("all", [Mode.CONTINUOUS_INTEGRATION, Mode.LINT]),
        ],
    )
    def test_aliases(self, alias, expected):
        assert parse_modes(alias) == expected

    def test_invalid_mode(self):
        with pytest.raises(ConfigError, match="invalid mode"):
            parse_modes("pre-commit,nightly")

    def test_blank_items_ignored(self):
        assert parse_modes(" pp , ") == [Mode.PRE_PUSH]


class TestVersions:
    """Test min_version gating."""

    @pytest.mark.parametrize(
        "required, current, ok",
        [
            ("0.4.4", "0.4.4", True),
            ("0.4", "0.4.4", True),
            ("0.4.4", "0.4", False),
            ("3.0", "3.0.0", True),
            ("0.10", "0.9.9", False),
            ("1", "0.99", False),
        ],
    )
    def test_is_compatible(self, required, current, ok):
        assert is_compatible(required, current) is ok

    def test_invalid_version(self):
        with pytest.raises(ConfigError):
            is_compatible("1.x")


class TestConfig:
    """Test the configuration model."""

    def test_default_config_builds_every_check(self):
        config = default_config()

        checks, max_duration = config.enabled_checks([Mode.PRE_COMMIT])

        assert max_duration == 5
        assert [check.kind for check in checks] == ["build", "format", "test"]
        assert isinstance(checks[0], Build)
        assert checks[2].options.extra_args == ["-x"]

    def test_max_duration_is_largest_of_modes(self):
        config = default_config()

        _, max_duration = config.enabled_checks([Mode.PRE_COMMIT, Mode.CONTINUOUS_INTEGRATION])

        assert max_duration == 120

    def test_missing_mode_contributes_nothing(self):
        config = Config(modes={Mode.LINT: ModeSettings(checks={"build": [{}]}, max_duration=3)})

        checks, max_duration = config.enabled_checks([Mode.PRE_PUSH])

        assert checks == []
        assert max_duration == 0

    def test_same_check_twice_with_options(self):
        config = Config(
            modes={Mode.PRE_PUSH: ModeSettings(checks={"test": [{"extra_args": ["-x"]}, {"extra_args": ["-k", "slow"]}]})}
        )

        checks, _ = config.enabled_checks([Mode.PRE_PUSH])

        assert len(checks) == 2
        assert all(isinstance(check, Test) for check in checks)

    def test_none_options_means_defaults(self):
        config = Config(modes={Mode.PRE_PUSH: ModeSettings(checks={"coverage": [None]})})

        checks, _ = config.enabled_checks([Mode.PRE_PUSH])

        assert isinstance(checks[0], Coverage)
        assert checks[0].options.global_.min_coverage == 50

    def test_unknown_check(self):
        config = Config(modes={Mode.LINT: ModeSettings(checks={"spellcheck": [{}]})})

        with pytest.raises(ConfigError, match="unknown check"):
            config.validate_checks()

    def test_to_yaml_round_trip(self):
        config = default_config()

        text = config.to_yaml()

        assert text.startswith("# hookgate configuration file")
        assert Config.model_validate(yaml.safe_load(text)) == config


class TestLoading:
    """Test configuration file discovery."""

    def write(self, path, document):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(document))
        return path

    def test_defaults_when_nothing_found(self, temp_dir, monkeypatch):
        monkeypatch.setenv("HOME", str(temp_dir / "home"))

        path, config = load_config(temp_dir, temp_dir / ".git")

        assert path == "<N/A>"
        assert config == default_config()

    def test_scm_dir_wins_over_root(self, temp_dir, monkeypatch):
        monkeypatch.setenv("HOME", str(temp_dir / "home"))
        self.write(temp_dir / ".git" / "hookgate.yml", {"modes": {"lint": {"max_duration": 1}}})
        self.write(temp_dir / "hookgate.yml", {"modes": {"lint": {"max_duration": 2}}})

        path, config = load_config(temp_dir, temp_dir / ".git")

        assert path == str(temp_dir / ".git" / "hookgate.yml")
        assert config.modes[Mode.LINT].max_duration == 1

    def test_root_then_home(self, temp_dir, monkeypatch):
        home = temp_dir / "home"
        monkeypatch.setenv("HOME", str(home))
        self.write(home / ".config" / "hookgate.yml", {"modes": {"lint": {"max_duration": 3}}})

        path, config = load_config(temp_dir, temp_dir / ".git")

        assert path == str(home / ".config" / "hookgate.yml")
        assert config.modes[Mode.LINT].max_duration == 3

    def test_absolute_name(self, temp_dir):
        target = self.write(temp_dir / "custom.yml", {"ignore_patterns": ["vendor"]})

        path, config = load_config(temp_dir, None, str(target))

        assert path == str(target)
        assert config.ignore_patterns == ["vendor"]

    def test_newer_min_version_is_ignored(self, temp_dir):
        target = self.write(temp_dir / "hookgate.yml", {"min_version": "999.0"})

        assert load_config_file(target) is None

    def test_current_version_accepted(self, temp_dir):
        target = self.write(temp_dir / "hookgate.yml", {"min_version": __version__})

        assert load_config_file(target) is not None

    def test_invalid_yaml_is_ignored(self, temp_dir):
        target = temp_dir / "hookgate.yml"
        target.write_text("modes: [unclosed\n")

        assert load_config_file(target) is None

    def test_invalid_check_options_are_ignored(self, temp_dir):
        target = self.write(temp_dir / "hookgate.yml", {"modes": {"lint": {"checks": {"build": [{"bogus": 1}]}}}})

        assert load_config_file(target) is None

    def test_missing_file(self, temp_dir):
        assert load_config_file(temp_dir / "absent.yml") is None
