"""Storage directory resolution and log file naming."""

import logging
import os
import re
from pathlib import Path

from streamlog.config import Config, NamingMode
from streamlog.errors import ConfigError
from streamlog.timefmt import epoch_ms

logger = logging.getLogger(__name__)

LOG_EXT = ".log"
CURRENT_LOG = "current" + LOG_EXT

ROOT_LOG_DIR = "/var/log"
XDG_SUBDIR = "streamlog"
HOME_SUBDIR = os.path.join(".local", "share", "streamlog", "logs")


def resolve_log_dir(config: Config, env=None, uid: int | None = None) -> Path:
    """Pick the directory the engine writes into.

    An explicit base_dir wins. Otherwise root logs under /var/log, everyone
    else under $XDG_DATA_HOME/streamlog or ~/.local/share/streamlog/logs.
    In subdirectory mode the application name is appended.
    """
    env = os.environ if env is None else env
    uid = os.getuid() if uid is None else uid

    if config.base_dir:
        root = Path(config.base_dir)
    elif uid == 0:
        root = Path(ROOT_LOG_DIR)
    elif env.get("XDG_DATA_HOME"):
        root = Path(env["XDG_DATA_HOME"]) / XDG_SUBDIR
    elif env.get("HOME"):
        root = Path(env["HOME"]) / HOME_SUBDIR
    else:
        raise ConfigError("could not determine directory for storing logs")

    if config.naming is NamingMode.SUBDIRECTORY:
        return root / config.app_name
    return root


def ensure_dir(path: Path, mode: int = 0o755) -> Path:
    """Create every missing level of *path*, shallowest first."""
    path = Path(path)
    levels = [*reversed(path.parents), path]
    for level in levels:
        if level.is_dir():
            continue
        try:
            level.mkdir(mode=mode)
        except FileExistsError:
            if not level.is_dir():
                raise ConfigError(f"{level} exists and is not a directory") from None
        except OSError as e:
            raise ConfigError(f"cannot create {level}: {e.strerror}") from e
        logger.debug("Created directory %s", level)
    if not os.access(path, os.W_OK | os.X_OK):
        raise ConfigError(f"{path} is not writable")
    return path


def active_name(config: Config) -> str:
    if config.naming is NamingMode.FLAT:
        return config.app_name + LOG_EXT
    return CURRENT_LOG


def archive_name(config: Config, created_ns: int) -> str:
    """Archive file name for an active log created at *created_ns*."""
    stamp = epoch_ms(created_ns)
    if config.naming is NamingMode.FLAT:
        return f"{config.app_name}.{stamp}{LOG_EXT}"
    return stamp + LOG_EXT


def archive_pattern(config: Config) -> re.Pattern:
    """Regex matching archive names this configuration owns."""
    if config.naming is NamingMode.FLAT:
        return re.compile(rf"^{re.escape(config.app_name)}\.\d+{re.escape(LOG_EXT)}$")
    return re.compile(rf"^\d+{re.escape(LOG_EXT)}$")
