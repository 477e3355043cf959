import asyncio
import logging
import webbrowser
from typing import Any, Protocol, Set, runtime_checkable

from utils.utils import logger
from .locator import Locator

@runtime_checkable
class Editor(Protocol):
    """Displays and closes files on behalf of the bookmark manager"""

    async def open_file(self, locator: Locator) -> Any:
        """Show the file; a falsy result or an exception means failure"""
        ...

    async def close_tabs_for_locator(self, locator: Locator) -> bool:
        ...

@runtime_checkable
class Notifier(Protocol):
    """Surfaces messages to the user"""

    def show_error(self, message: str) -> None:
        ...

    def show_info(self, message: str) -> None:
        ...

class SystemEditor:
    """
    Opens bookmarked files with the desktop's default handler.

    The desktop gives no handle back on the windows it opens, so closing
    only forgets what this editor opened and reports whether it had.
    """

    def __init__(self):
        self._opened: Set[str] = set()
        self._log = logging.getLogger("FileBookmarks.editor")

    async def open_file(self, locator: Locator) -> bool:
        if locator.scheme == 'file' and not locator.fs_path.exists():
            self._log.debug(f"Refusing to open missing file {locator}")
            return False

        # webbrowser.open blocks while it spawns the handler
        opened = await asyncio.to_thread(webbrowser.open, str(locator))
        if opened:
            self._opened.add(str(locator))
        self._log.debug(f"Opened {locator}: {opened}")
        return bool(opened)

    async def close_tabs_for_locator(self, locator: Locator) -> bool:
        key = str(locator)
        if key not in self._opened:
            return False
        self._opened.discard(key)
        return True

class LogNotifier:
    """Notifier that routes user-facing messages to the application log"""

    def show_error(self, message: str) -> None:
        logger.error(message)

    def show_info(self, message: str) -> None:
        logger.info(message)
