"""Configuration management for pygdrive."""

import os
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "https://www.googleapis.com/drive/v3"
DEFAULT_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

ENV_ACCESS_TOKEN = "GDRIVE_ACCESS_TOKEN"
ENV_API_URL = "GDRIVE_API_URL"
ENV_UPLOAD_URL = "GDRIVE_UPLOAD_URL"
ENV_CONFIG_DIR = "PYGDRIVE_CONFIG_DIR"

CONFIG_FILE_NAME = "config"


class Config:
    """Reads settings from the environment and the user config file.

    Environment variables take precedence over values stored in the config
    file. The file is a plain ``KEY=value`` list.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                $PYGDRIVE_CONFIG_DIR or ~/.config/pygdrive
        """
        if config_dir is None:
            env_dir = os.environ.get(ENV_CONFIG_DIR)
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "pygdrive"
            )
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def _load_file(self) -> dict[str, str]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        values = {}
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            values[key.strip()] = value.strip()
        return values

    def _get(self, key: str) -> Optional[str]:
        return os.environ.get(key) or self._load_file().get(key)

    @property
    def access_token(self) -> Optional[str]:
        """OAuth access token used as bearer credential."""
        return self._get(ENV_ACCESS_TOKEN)

    @property
    def api_url(self) -> str:
        """Base URL of the metadata API."""
        return self._get(ENV_API_URL) or DEFAULT_API_URL

    @property
    def upload_url(self) -> str:
        """Base URL of the upload API."""
        return self._get(ENV_UPLOAD_URL) or DEFAULT_UPLOAD_URL

    def is_configured(self) -> bool:
        """Check whether an access token is available."""
        return bool(self.access_token)

    def save_access_token(self, token: str) -> None:
        """Store the access token in the config file.

        Other keys already present in the file are preserved.
        """
        values = self._load_file()
        values[ENV_ACCESS_TOKEN] = token
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        content = "".join(f"{key}={value}\n" for key, value in values.items())
        path.write_text(content, encoding="utf-8")
        path.chmod(0o600)


config = Config()
