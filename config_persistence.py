import json
import sys
from dataclasses import asdict
from pathlib import Path

from config import (
    Config,
    apply_dict_to_dataclass,
    migrate_config,
)
from logging_utils import log_event


APP_DIR_NAME = '.ringweave'
CONFIG_FILE_NAME = 'config.json'


def _home_config_dir() -> Path:
    config_dir = Path.home() / APP_DIR_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def _is_writable(directory: Path) -> bool:
    probe = directory / '.ringweave_write_test.tmp'
    try:
        probe.write_text('ok', encoding='utf-8')
        probe.unlink(missing_ok=True)
        return True
    except OSError:
        return False


def get_config_dir() -> Path:
    """Exe folder for a packaged build when it is writable, ~/.ringweave otherwise."""
    if getattr(sys, 'frozen', False):
        exe_dir = Path(sys.executable).parent
        if _is_writable(exe_dir):
            return exe_dir
    return _home_config_dir()


def get_config_file() -> Path:
    return get_config_dir() / CONFIG_FILE_NAME


def config_to_dict(config: Config) -> dict:
    """JSON-ready dict of the config (str enums serialize as their values)."""
    return json.loads(json.dumps(asdict(config)))


def config_from_dict(data) -> tuple[Config, bool]:
    """Build a migrated Config from parsed JSON. Second item is True when the schema was upgraded."""
    config = Config()
    apply_dict_to_dataclass(config, data)
    loaded_version = data.get('version') if isinstance(data, dict) else None
    migrate_config(config, loaded_version)
    return config, loaded_version != config.version


def save_config(config: Config) -> bool:
    """Write config to disk. Returns False (and logs) instead of raising."""
    try:
        config_file = get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config_to_dict(config), f, indent=2)
    except Exception as e:
        log_event("ERROR", "Config", "Failed to save", error=e)
        return False
    log_event("INFO", "Config", "Saved", path=config_file)
    return True


def load_config() -> Config:
    """Load the saved config; defaults when missing or unreadable. Upgraded files are re-saved."""
    try:
        config_file = get_config_file()
        if not config_file.exists():
            log_event("INFO", "Config", "No saved config found, using defaults")
            return Config()

        with open(config_file, 'r', encoding='utf-8') as f:
            config, migrated = config_from_dict(json.load(f))
    except Exception as e:
        log_event("ERROR", "Config", "Failed to load, using defaults", error=e)
        return Config()

    log_event("INFO", "Config", "Loaded", path=config_file, version=config.version)
    if migrated and not save_config(config):
        log_event("WARNING", "Config", "Could not auto-save migrated config")
    return config
