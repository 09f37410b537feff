"""Configuration management for cmiscopy.

Settings are read from environment variables first and fall back to a
``KEY=VALUE`` file stored in ``~/.config/cmiscopy/config``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Mapping of attribute name -> environment variable / config file key
_KEYS = {
    "url": "CMIS_URL",
    "cmis_root": "CMIS_ROOT",
    "local_root": "CMISCOPY_LOCAL_ROOT",
    "username": "CMIS_USERNAME",
    "password": "CMIS_PASSWORD",
    "registry": "CMISCOPY_REGISTRY",
}


class Config:
    """Connection settings for a CMIS repository."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/cmiscopy
        """
        self.config_dir = config_dir or Path.home() / ".config" / "cmiscopy"
        self._file_values: Optional[dict[str, str]] = None

    def get_config_path(self) -> Path:
        """Get the path of the config file."""
        return self.config_dir / "config"

    def _load_file(self) -> dict[str, str]:
        if self._file_values is not None:
            return self._file_values

        values: dict[str, str] = {}
        path = self.get_config_path()
        if path.exists():
            try:
                for line in path.read_text(encoding="utf-8").splitlines():
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip()
            except OSError as e:
                logger.warning(f"Failed to read config file {path}: {e}")
        self._file_values = values
        return values

    def get(self, name: str) -> Optional[str]:
        """Get a setting by attribute name.

        Args:
            name: One of url, cmis_root, local_root, username, password, registry

        Returns:
            Setting value or None if not set anywhere
        """
        key = _KEYS[name]
        value = os.environ.get(key)
        if value:
            return value
        return self._load_file().get(key) or None

    @property
    def url(self) -> Optional[str]:
        return self.get("url")

    @property
    def cmis_root(self) -> Optional[str]:
        return self.get("cmis_root")

    @property
    def local_root(self) -> Optional[str]:
        return self.get("local_root")

    @property
    def username(self) -> Optional[str]:
        return self.get("username")

    @property
    def password(self) -> Optional[str]:
        return self.get("password")

    @property
    def registry_path(self) -> Path:
        """Location of the version registry file."""
        value = self.get("registry")
        if value:
            return Path(value).expanduser()
        return self.config_dir / "versions.json"

    def save(self, **values: Optional[str]) -> Path:
        """Store settings in the config file.

        Existing keys not passed in are kept.

        Args:
            **values: Settings by attribute name (None values are skipped)

        Returns:
            Path of the written config file
        """
        current = dict(self._load_file())
        for name, value in values.items():
            if value is not None:
                current[_KEYS[name]] = value

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        lines = [f"{key}={value}" for key, value in sorted(current.items())]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        path.chmod(0o600)

        self._file_values = current
        logger.debug(f"Saved configuration to {path}")
        return path


config = Config()
