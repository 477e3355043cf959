"""
Models package for the File Bookmarks application.
"""

from .bookmark import Bookmark, BookmarkGroup, ClosePolicy, OpenPolicy
from .bookmark_manager import BookmarkManager, create_default_manager
from .editor import Editor, LogNotifier, Notifier, SystemEditor
from .errors import BookmarkError, ExternalOperationFailed, MalformedRecordError
from .locator import Locator
from .path_manager import PathManager
from .storage import JsonFileStore, KeyValueStore

__all__ = [
    'Bookmark',
    'BookmarkError',
    'BookmarkGroup',
    'BookmarkManager',
    'ClosePolicy',
    'Editor',
    'ExternalOperationFailed',
    'JsonFileStore',
    'KeyValueStore',
    'Locator',
    'LogNotifier',
    'MalformedRecordError',
    'Notifier',
    'OpenPolicy',
    'PathManager',
    'SystemEditor',
    'create_default_manager',
]
