from .model import CompanionConfig
from .repository import ConfigRepository
from .watcher import ConfigFileHandler, ConfigWatcher, create_config_watcher

__all__ = [
    "CompanionConfig",
    "ConfigFileHandler",
    "ConfigRepository",
    "ConfigWatcher",
    "create_config_watcher",
]
