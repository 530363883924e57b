"""Configuration file loading and logging setup."""
import logging
import os
from pathlib import Path

import yaml
from rich.logging import RichHandler

from cabinet_planner.errors import ParseError

APP_DIR = Path.home() / ".cabinet_planner"
DEFAULT_DB_PATH = str(APP_DIR / "cabinet.db")
DEFAULT_CONFIG_PATH = str(APP_DIR / "config.yaml")
CONFIG_ENV_VAR = "CABINET_PLANNER_CONFIG"

DEFAULT_CONFIG = {
    "db_path": DEFAULT_DB_PATH,
    "log_level": "WARNING",
    # Spreadsheet column holding the activity text (0-based).
    "import_column": 1,
    "report_dir": str(APP_DIR / "reports"),
}


def load_config(path: str | None = None) -> dict:
    """Load the YAML config file merged over DEFAULT_CONFIG.

    The path comes from the argument, then $CABINET_PLANNER_CONFIG, then
    DEFAULT_CONFIG_PATH. A missing file yields the defaults.
    """
    config_path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()
    config = dict(DEFAULT_CONFIG)
    if not config_path.exists():
        return config
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid config file {config_path}: {e}") from e
    if data is None:
        return config
    if not isinstance(data, dict):
        raise ParseError(f"Config file {config_path} must contain a mapping")
    config.update({k: v for k, v in data.items() if v is not None})
    config["db_path"] = str(Path(config["db_path"]).expanduser())
    config["report_dir"] = str(Path(config["report_dir"]).expanduser())
    return config


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
