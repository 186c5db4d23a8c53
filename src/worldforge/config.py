"""WorldForge configuration.

Settings resolve in this order, highest priority first:

1. Environment variables (``WORLDFORGE_DATA_DIR``, ``WORLDFORGE_TIER``,
   ``WORLDFORGE_ACTIVITY_CAPACITY``)
2. User config file (``~/.config/worldforge/config.yaml``)
3. Built-in defaults

Example config.yaml::

    data_dir: ~/worlds
    tier: premium
    activity_capacity: 200
    limits:
      max_worlds: 10
      max_elements_per_world: 500
    log_to_file: true
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from worldforge.graph.activity import DEFAULT_CAPACITY
from worldforge.observability.logging import get_logger
from worldforge.policy import AccessPolicy, Tier

log = get_logger(__name__)

# XDG-compliant default config directory
_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "worldforge"

DEFAULT_DATA_DIR = Path("worldforge-data")

ENV_DATA_DIR = "WORLDFORGE_DATA_DIR"
ENV_TIER = "WORLDFORGE_TIER"
ENV_ACTIVITY_CAPACITY = "WORLDFORGE_ACTIVITY_CAPACITY"


def _positive_int(name: str, value: Any, *, allow_zero: bool = False) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e
    if number < 0 or (number == 0 and not allow_zero):
        raise ValueError(f"{name} must be {'non-negative' if allow_zero else 'positive'}")
    return number


def _optional_limit(name: str, value: Any) -> int | None:
    if value is None:
        return None
    return _positive_int(name, value, allow_zero=True)


@dataclass
class WorldForgeConfig:
    """Resolved application settings.

    Attributes:
        data_dir: Where saved state and logs live.
        tier: Access tier the default policy comes from.
        activity_capacity: How many activity items the log keeps.
        max_worlds: Optional override of the tier's world ceiling.
        max_elements_per_world: Optional override of the tier's element ceiling.
        log_to_file: Whether to write a JSONL debug log under data_dir/logs.
    """

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    tier: Tier = Tier.FREE
    activity_capacity: int = DEFAULT_CAPACITY
    max_worlds: int | None = None
    max_elements_per_world: int | None = None
    log_to_file: bool = False

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).expanduser()
        self.tier = Tier(str(self.tier).strip().lower())
        self.activity_capacity = _positive_int("activity_capacity", self.activity_capacity)
        self.max_worlds = _optional_limit("max_worlds", self.max_worlds)
        self.max_elements_per_world = _optional_limit(
            "max_elements_per_world", self.max_elements_per_world
        )

    @property
    def state_dir(self) -> Path:
        return self.data_dir / "state"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"

    def policy(self) -> AccessPolicy:
        """Build the access policy for the configured tier and overrides."""
        return AccessPolicy.for_tier(self.tier).with_limits(
            max_worlds=self.max_worlds,
            max_elements_per_world=self.max_elements_per_world,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorldForgeConfig:
        """Create config from a parsed config file.

        Raises:
            ValueError: If a value is invalid.
        """
        limits = dict(data.get("limits") or {})
        kwargs: dict[str, Any] = {}
        if data.get("data_dir"):
            kwargs["data_dir"] = Path(str(data["data_dir"]))
        if data.get("tier"):
            kwargs["tier"] = data["tier"]
        if data.get("activity_capacity") is not None:
            kwargs["activity_capacity"] = data["activity_capacity"]
        if data.get("log_to_file") is not None:
            kwargs["log_to_file"] = bool(data["log_to_file"])
        return cls(
            max_worlds=limits.get("max_worlds"),
            max_elements_per_world=limits.get("max_elements_per_world"),
            **kwargs,
        )


def load_user_config(config_dir: Path | None = None) -> dict[str, Any]:
    """Read the user config file.

    Args:
        config_dir: Override config directory (for testing).
            Defaults to ~/.config/worldforge/.

    Returns:
        The parsed mapping, or an empty dict if the file is missing,
        unreadable, or not valid YAML.
    """
    config_dir = config_dir or _DEFAULT_CONFIG_DIR
    config_path = config_dir / "config.yaml"

    if not config_path.exists():
        return {}

    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except OSError as e:
        log.warning("user_config_load_failed", path=str(config_path), error=str(e))
        return {}
    except YAMLError as e:
        log.warning("user_config_parse_failed", path=str(config_path), error=str(e))
        return {}

    if not isinstance(data, dict):
        if data is not None:
            log.warning("user_config_not_mapping", path=str(config_path))
        return {}

    log.debug("user_config_loaded", path=str(config_path))
    return dict(data)


def load_config(
    config_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> WorldForgeConfig:
    """Resolve configuration from environment, user config, and defaults.

    Args:
        config_dir: Override config directory (for testing).
        environ: Environment to read (defaults to ``os.environ``).

    Raises:
        ValueError: If a configured value is invalid. Invalid values are
            reported, not silently replaced by defaults.
    """
    env = os.environ if environ is None else environ
    data = load_user_config(config_dir)

    if env.get(ENV_DATA_DIR):
        data["data_dir"] = env[ENV_DATA_DIR]
    if env.get(ENV_TIER):
        data["tier"] = env[ENV_TIER]
    if env.get(ENV_ACTIVITY_CAPACITY):
        data["activity_capacity"] = env[ENV_ACTIVITY_CAPACITY]

    return WorldForgeConfig.from_dict(data)
