"""Mode definitions and the YAML configuration file."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .. import __version__
from ..checks.base import Check
from ..checks.registry import create_check
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "hookgate.yml"

YAML_HEADER = """\
# hookgate configuration file to run checks automatically on commit, on push
# and on continuous integration service after a push or on merge of a pull
# request.
#
# Run `hookgate help` for the list of supported checks.

"""


class Mode(str, Enum):
    PRE_COMMIT = "pre-commit"
    PRE_PUSH = "pre-push"
    CONTINUOUS_INTEGRATION = "continuous-integration"
    LINT = "lint"


ALL_MODES = [Mode.PRE_COMMIT, Mode.PRE_PUSH, Mode.CONTINUOUS_INTEGRATION, Mode.LINT]

MODE_ALIASES: dict[str, list[Mode]] = {
    "all": [Mode.CONTINUOUS_INTEGRATION, Mode.LINT],
    "fast": [Mode.PRE_COMMIT],
    "pc": [Mode.PRE_COMMIT],
    "slow": [Mode.PRE_PUSH],
    "pp": [Mode.PRE_PUSH],
    "full": [Mode.CONTINUOUS_INTEGRATION],
    "ci": [Mode.CONTINUOUS_INTEGRATION],
}

HELP_MODES = (
    "Supported modes (with shortcut names):\n"
    "- pre-commit / fast / pc\n"
    "- pre-push / slow / pp  (default)\n"
    "- continuous-integration / full / ci\n"
    "- lint\n"
    "- all: includes both continuous-integration and lint"
)


def parse_modes(value: str) -> list[Mode]:
    """Parse a comma separated list of mode names or shortcuts."""
    modes: list[Mode] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        if item in MODE_ALIASES:
            modes.extend(MODE_ALIASES[item])
            continue
        try:
            modes.append(Mode(item))
        except ValueError:
            raise ConfigError(f'invalid mode "{item}"\n\n{HELP_MODES}') from None
    return modes


def parse_version(value: str) -> list[int]:
    """Convert "1.2.3" into [1, 2, 3]."""
    try:
        return [int(part) for part in value.split(".")]
    except ValueError:
        raise ConfigError(f"invalid version {value!r}") from None


def is_compatible(min_version: str, current: str = __version__) -> bool:
    """Return whether ``current`` satisfies ``min_version``. 3.0 == 3.0.0."""
    required = parse_version(min_version)
    have = parse_version(current)
    width = max(len(required), len(have))
    required += [0] * (width - len(required))
    have += [0] * (width - len(have))
    return have >= required


class ModeSettings(BaseModel):
    """Checks enabled for one mode, each with a list of option mappings."""

    model_config = ConfigDict(extra="forbid")

    checks: dict[str, list[dict[str, Any] | None]] = Field(default_factory=dict)
    max_duration: int = Field(default=15, ge=0)


class Config(BaseModel):
    """The whole configuration document."""

    model_config = ConfigDict(extra="forbid")

    min_version: str = __version__
    modes: dict[Mode, ModeSettings] = Field(default_factory=dict)
    ignore_patterns: list[str] = Field(default_factory=list)

    def enabled_checks(self, modes: list[Mode], root: Path | None = None) -> tuple[list[Check], int]:
        """Instantiate every check enabled in modes and the largest time budget."""
        checks: list[Check] = []
        max_duration = 0
        for mode in modes:
            settings = self.modes.get(mode)
            if settings is None:
                continue
            max_duration = max(max_duration, settings.max_duration)
            for kind, option_list in settings.checks.items():
                for options in option_list:
                    checks.append(create_check(kind, options or {}, root=root))
        return checks, max_duration

    def validate_checks(self) -> None:
        """Build every configured check once so bad options fail early."""
        self.enabled_checks(list(self.modes))

    def to_yaml(self) -> str:
        document = {
            "min_version": self.min_version,
            "modes": {
                mode.value: settings.model_dump()
                for mode, settings in sorted(self.modes.items(), key=lambda item: item[0].value)
            },
            "ignore_patterns": list(self.ignore_patterns),
        }
        return YAML_HEADER + yaml.safe_dump(document, default_flow_style=False, sort_keys=False)


def default_config() -> Config:
    """Configuration used when no file is found."""
    return Config(
        min_version=__version__,
        modes={
            Mode.PRE_COMMIT: ModeSettings(
                checks={"build": [{}], "format": [{}], "test": [{"extra_args": ["-x"]}]},
                max_duration=5,
            ),
            Mode.PRE_PUSH: ModeSettings(
                checks={"coverage": [{}], "isort": [{}], "test": [{}]},
                max_duration=15,
            ),
            Mode.CONTINUOUS_INTEGRATION: ModeSettings(
                checks={
                    "build": [{}],
                    "coverage": [{}],
                    "format": [{}],
                    "isort": [{}],
                    "lint": [{}],
                    "test": [{}],
                    "typecheck": [{}],
                },
                max_duration=120,
            ),
            Mode.LINT: ModeSettings(
                checks={"lint": [{}], "typecheck": [{}]},
                max_duration=15,
            ),
        },
        ignore_patterns=[".*", "__pycache__", "build", "dist", "*.egg-info", "venv"],
    )


def load_config_file(path: Path) -> Config | None:
    """Parse path; None when missing, invalid or requiring a newer hookgate."""
    try:
        raw = yaml.safe_load(path.read_text())
    except FileNotFoundError:
        return None
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("failed to parse %s: %s", path, exc)
        return None

    try:
        config = Config.model_validate(raw or {})
        if not is_compatible(config.min_version):
            logger.warning("%s requires newer version %s", path, config.min_version)
            return None
        config.validate_checks()
    except ValidationError as exc:
        logger.warning("failed to parse %s: %s", path, exc)
        return None
    except ConfigError as exc:
        logger.warning("invalid configuration in %s: %s", path, exc)
        return None
    return config


def load_config(root: Path, scm_dir: Path | None, name: str = DEFAULT_CONFIG_NAME) -> tuple[str, Config]:
    """Locate and load the configuration.

    An absolute name is used as is. Otherwise look in order at
    ``<scm dir>/<name>``, ``<root>/<name>`` and ``~/.config/<name>``, falling
    back to ``default_config()``.
    """
    path = Path(name).expanduser()
    candidates: list[Path] = []
    if path.is_absolute():
        candidates.append(path)
    else:
        if scm_dir is not None:
            candidates.append(scm_dir / name)
        candidates.append(root / name)
        candidates.append(Path.home() / ".config" / name)

    for candidate in candidates:
        config = load_config_file(candidate)
        if config is not None:
            logger.info("using configuration %s", candidate)
            return str(candidate), config
    return "<N/A>", default_config()
