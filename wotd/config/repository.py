from __future__ import annotations

import logging
import os

from pydantic import ValidationError

from ..utils.helpers import read_json
from .model import CompanionConfig


class ConfigRepository:
    """Loads the companion configuration file (JSON object).

    The parsed config is cached and reused while the file's mtime and size
    are unchanged.
    """

    def __init__(self, path: str | os.PathLike[str]):
        if not isinstance(path, str | os.PathLike):
            raise TypeError("path must be str or os.PathLike")
        self.path = str(path)
        self._file_mtime: float | None = None
        self._file_size: int | None = None
        self._cached: CompanionConfig | None = None

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def load(self) -> CompanionConfig | None:
        """Return the configuration, or None if the file is missing or invalid."""
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return None
        if (
            self._cached is not None
            and self._file_mtime == st.st_mtime
            and self._file_size == st.st_size
        ):
            return self._cached

        data = read_json(self.path)
        if not isinstance(data, dict):
            logging.error(f"⚠️ Configuration file {self.path} is not a JSON object")
            return None
        try:
            config = CompanionConfig.from_dict(data)
        except ValidationError as e:
            logging.error(f"⚠️ Invalid configuration: {e.error_count()} error(s)")
            for err in e.errors():
                loc = ".".join(str(p) for p in err.get("loc", ()))
                logging.error(f"  {loc}: {err.get('msg')}")
            return None
        self._cached = config
        self._file_mtime = st.st_mtime
        self._file_size = st.st_size
        return config

    def load_or_default(self) -> CompanionConfig:
        return self.load() or CompanionConfig()
