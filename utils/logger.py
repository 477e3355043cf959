import logging
import sys
import shutil
from datetime import datetime
from pathlib import Path
from appdirs import user_data_dir

from .config import get_settings

# Configure logging
def setup_logging():
    """Configure logging for the application"""
    settings = get_settings()

    # Settings may point the data directory somewhere else (tests, portable installs)
    base_dir = settings.data_dir or Path(user_data_dir(settings.app_name))
    log_dir = Path(base_dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    current_log = log_dir / "file_bookmarks.log"
    backup_log = log_dir / f"file_bookmarks_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    # Rotate logs if current log exists
    if current_log.exists():
        backup_files = sorted(log_dir.glob("file_bookmarks_*.log"), reverse=True)

        # Keep at most two backups
        while len(backup_files) >= 2:
            backup_files[-1].unlink()
            backup_files.pop()

        shutil.move(str(current_log), str(backup_log))

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Remove any existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    file_handler = logging.FileHandler(
        current_log,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    main_logger = logging.getLogger("FileBookmarks")
    main_logger.setLevel(level)

    # Store and editor traffic is noisy, only worth it when debugging
    debug_modules = [
        "FileBookmarks.store",
        "FileBookmarks.editor",
    ]
    for module in debug_modules:
        logging.getLogger(module).setLevel(logging.DEBUG if level <= logging.DEBUG else level)

    main_logger.info(f"Application started - Log file created at {current_log}")

# Create logger instance with context
class ContextLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        # Add group context if available
        group = kwargs.pop('group', None)
        if group:
            msg = f"[{group}] {msg}"
        return msg, kwargs

# Initialize logging when module is imported
setup_logging()

# Create the main logger
logger = ContextLogger(logging.getLogger("FileBookmarks"), {})
