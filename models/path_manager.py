from pathlib import Path
from typing import Optional

from appdirs import user_data_dir

from utils.config import Settings, get_settings

class PathManager:
    """Resolves where the bookmark store, logs and exports live"""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        if self._settings.data_dir is not None:
            self._data_dir = Path(self._settings.data_dir).expanduser()
        else:
            self._data_dir = Path(user_data_dir(self._settings.app_name))

    @property
    def data_dir(self) -> Path:
        """Per-user data directory"""
        return self._data_dir

    @property
    def log_dir(self) -> Path:
        return self._data_dir / 'logs'

    @property
    def store_path(self) -> Path:
        """JSON file backing the default key-value store"""
        return self._data_dir / self._settings.store_filename

    def default_export_path(self, directory: Optional[Path] = None) -> Path:
        """Suggested file name for an export, in directory or the home folder"""
        return (directory or Path.home()) / self._settings.export_filename
