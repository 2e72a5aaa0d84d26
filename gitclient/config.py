"""User defaults: backend, remote name, network tuning and the ssh command"""

import configparser
import logging
import os
import platform
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

APP_NAME = "gitclient"

default_cfg: Dict[str, Dict[str, str]] = {
    "client": {"backend": "native", "remote_name": "origin"},
    # Only applied to network remotes, local paths never time out or go shallow
    "network": {"timeout": "0", "shallow": "false"},
    "ssh": {"command": "ssh"},
}

if platform.system() == "Darwin":
    config_dir = Path("~/Library/Application Support").expanduser() / APP_NAME
else:
    config_dir = (
        Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config") / APP_NAME
    )


def get_config_file() -> Path:
    return config_dir / f"{APP_NAME}.cfg"


def init_dirs() -> None:
    """Create the configuration directory, warning instead of failing."""
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create {config_dir} ({e}), settings will not persist")


class ConfigAccessor:
    """
    Read and write gitclient.cfg.

    Lookups of unknown sections or keys return the given default.

        config = ConfigAccessor()
        config.get("network", "timeout", default="0")
    """

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            init_dirs()
            config_path = get_config_file()
        self.config_path = Path(config_path)
        self.config = configparser.ConfigParser()
        self.config.read(self.config_path)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        return self.config.get(section, key, fallback=default)

    def set(self, section: str, key: str, value: str) -> None:
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, value)

    def save(self) -> None:
        """Write the file back; a read-only location only logs a warning."""
        try:
            with open(self.config_path, "w") as f:
                self.config.write(f)
        except OSError as e:
            logger.warning(f"Cannot write {self.config_path} ({e}), changes are lost")

    def sections(self) -> List[str]:
        return self.config.sections()

    def options(self, section: str) -> List[str]:
        if not self.config.has_section(section):
            return []
        return self.config.options(section)


config = ConfigAccessor()


def _get(section: str, key: str) -> str:
    return config.get(section, key, default_cfg[section][key])


def get_default_backend() -> str:
    return _get("client", "backend")


def get_default_remote_name() -> str:
    return _get("client", "remote_name")


def get_network_timeout() -> int:
    """
    Timeout in seconds for network remotes when a command sets none.

    Returns:
        The configured timeout, 0 (no timeout) when unset or invalid
    """
    value = _get("network", "timeout")
    try:
        return max(0, int(value))
    except ValueError:
        logger.warning(f"Ignoring invalid network timeout '{value}' in {config.config_path}")
        return 0


def get_network_shallow() -> bool:
    return _get("network", "shallow").strip().lower() in ("1", "true", "yes", "on")


def get_ssh_command() -> str:
    return _get("ssh", "command")
