"""Configuration loading from CLI args, env vars, and optional YAML file."""

import argparse
import logging
import os
from dataclasses import dataclass
from enum import Enum

import yaml

from streamlog.errors import ConfigError
from streamlog.timefmt import TimeFormat

logger = logging.getLogger(__name__)

KiB = 1024
MiB = 1024 * KiB
DAY = 24 * 60 * 60

MAX_LOG_COUNT = 2**31 - 1

# -t, -tt, -ttt
_TIME_FORMAT_BY_COUNT = [
    TimeFormat.NONE,
    TimeFormat.EPOCH_MS,
    TimeFormat.HUMAN_MINUTE,
    TimeFormat.HUMAN_MINUTE_T,
]


class NamingMode(Enum):
    SUBDIRECTORY = "subdirectory"
    FLAT = "flat"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    app_name: str
    buffer_size: int = KiB
    log_size: int = 10 * MiB
    log_age: int = DAY
    log_count: int = 7
    time_format: TimeFormat = TimeFormat.NONE
    naming: NamingMode = NamingMode.SUBDIRECTORY
    base_dir: str | None = None


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamlog",
        description="Timestamp lines from stdin and store them in rotating log files.",
    )
    parser.add_argument("app_name", metavar="APPNAME",
                        help="Application name, used as subdirectory or file stem")
    parser.add_argument("-t", dest="time_level", action="count", default=None,
                        help="Prefix lines with a timestamp; repeat for other formats "
                             "(-t epoch ms, -tt human, -ttt ISO-like)")
    parser.add_argument("--time-format", choices=[f.value for f in TimeFormat], default=None,
                        help="Timestamp format by name (overrides -t)")
    parser.add_argument("-b", "--buffer-size", type=int, default=None,
                        help=f"Read buffer size in bytes (default: {KiB})")
    parser.add_argument("-s", "--log-size", type=int, default=None,
                        help=f"Rotate once the active log reaches this many bytes (default: {10 * MiB})")
    parser.add_argument("-a", "--log-age", type=int, default=None,
                        help=f"Rotate every N seconds, 0 disables (default: {DAY})")
    parser.add_argument("-n", "--log-count", type=int, default=None,
                        help="Number of rotated logs to keep (default: 7)")
    parser.add_argument("-d", "--base-dir", default=None,
                        help="Directory for log storage instead of the per-user default")
    parser.add_argument("-f", "--flat", action="store_true", default=None,
                        help="Store logs as APPNAME.*.log instead of in an APPNAME subdirectory")
    parser.add_argument("-c", "--config", default=None,
                        help="Path to a YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug output on stderr")
    return parser


def load_yaml_config(path: str | None) -> dict:
    """Read the optional YAML settings file given with --config.

    Keys mirror the long option names (buffer_size, log_size, log_age,
    log_count, time_format, flat, base_dir). A missing file is tolerated so
    a shared wrapper script can always pass --config.
    """
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Settings file %s not found, falling back to flags and environment", path)
        return {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"unreadable settings file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"settings file {path} must be a mapping of option names")
    logger.debug("Read %d setting(s) from %s", len(data), path)
    return data


def _int_setting(name: str, cli_value, env: dict, env_key: str, yaml_data: dict, default: int) -> int:
    if cli_value is not None:
        return cli_value
    raw = env.get(env_key, yaml_data.get(name, default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid value for {name}: {raw!r}") from None


def _time_format(args, env: dict, yaml_data: dict) -> TimeFormat:
    if args.time_format is not None:
        return TimeFormat(args.time_format)
    if args.time_level is not None:
        if args.time_level >= len(_TIME_FORMAT_BY_COUNT):
            raise ConfigError("chosen time format is invalid")
        return _TIME_FORMAT_BY_COUNT[args.time_level]
    raw = env.get("STREAMLOG_TIME_FORMAT", yaml_data.get("time_format", TimeFormat.NONE.value))
    try:
        return TimeFormat(str(raw).strip().lower())
    except ValueError:
        raise ConfigError(f"invalid value for time_format: {raw!r}") from None


def _naming(args, env: dict, yaml_data: dict) -> NamingMode:
    if args.flat:
        flat = True
    elif "STREAMLOG_FLAT" in env:
        flat = _parse_bool(env["STREAMLOG_FLAT"])
    else:
        raw = yaml_data.get("flat", False)
        flat = raw if isinstance(raw, bool) else _parse_bool(str(raw))
    return NamingMode.FLAT if flat else NamingMode.SUBDIRECTORY


def validate(config: Config) -> Config:
    """Reject values the engine cannot run with. Returns *config* unchanged."""
    name = config.app_name
    if not name:
        raise ConfigError("no APPNAME given")
    if "/" in name or "." in name:
        raise ConfigError("APPNAME contains unallowed characters")
    if config.buffer_size <= 0:
        raise ConfigError("buffer size must be greater than zero")
    if config.log_size <= 0:
        raise ConfigError("log size before rotating must be greater than zero")
    if config.log_age < 0:
        raise ConfigError("log age must not be negative")
    if config.log_count < 0:
        raise ConfigError("log count must not be negative")
    if config.log_count > MAX_LOG_COUNT:
        raise ConfigError("You really want to keep that many logs?")
    return config


def load_config(args: argparse.Namespace, yaml_data: dict, env=None) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data.

    CLI flags win over STREAMLOG_* environment variables, which win over the
    YAML file, which wins over the built-in defaults.
    """
    env = os.environ if env is None else env
    base_dir = args.base_dir or env.get("STREAMLOG_BASE_DIR") or yaml_data.get("base_dir")

    config = Config(
        app_name=args.app_name,
        buffer_size=_int_setting("buffer_size", args.buffer_size, env,
                                 "STREAMLOG_BUFFER_SIZE", yaml_data, Config.buffer_size),
        log_size=_int_setting("log_size", args.log_size, env,
                              "STREAMLOG_LOG_SIZE", yaml_data, Config.log_size),
        log_age=_int_setting("log_age", args.log_age, env,
                             "STREAMLOG_LOG_AGE", yaml_data, Config.log_age),
        log_count=_int_setting("log_count", args.log_count, env,
                               "STREAMLOG_LOG_COUNT", yaml_data, Config.log_count),
        time_format=_time_format(args, env, yaml_data),
        naming=_naming(args, env, yaml_data),
        base_dir=str(base_dir) if base_dir else None,
    )
    return validate(config)
