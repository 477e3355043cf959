import json
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union
import os
from pathlib import Path

from PySide6.QtCore import QObject, Signal

from utils.config import Settings, get_settings
from utils.utils import logger
from .bookmark import Bookmark, BookmarkGroup, ClosePolicy, OpenPolicy
from .editor import Editor, LogNotifier, Notifier, SystemEditor
from .errors import ExternalOperationFailed, MalformedRecordError
from .locator import Locator
from .path_manager import PathManager
from .storage import JsonFileStore, KeyValueStore

LocatorLike = Union[Locator, str, os.PathLike]

class BookmarkManager(QObject):
    """
    Owns the forest of root bookmarks and root groups.

    Every mutation is persisted to the store and then announced through
    data_changed. The signal carries no payload; listeners re-read the forest.
    """

    data_changed = Signal()

    def __init__(self, store: KeyValueStore, editor: Optional[Editor] = None,
                 notifier: Optional[Notifier] = None, settings: Optional[Settings] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._store = store
        self._editor = editor
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._bookmarks: List[Bookmark] = []
        self._groups: List[BookmarkGroup] = []

        self.restore()

    # Forest access

    def list_root_bookmarks(self) -> List[Bookmark]:
        return list(self._bookmarks)

    def list_root_groups(self) -> List[BookmarkGroup]:
        return list(self._groups)

    def list_all_groups(self) -> List[BookmarkGroup]:
        """Every group in the forest, in pre-order"""
        groups = []
        for group in list(self._groups):
            groups.extend(group.walk())
        return groups

    def list_all_bookmarks(self) -> List[Bookmark]:
        """Root bookmarks followed by each group's own bookmarks"""
        bookmarks = list(self._bookmarks)
        for group in self.list_all_groups():
            bookmarks.extend(group.bookmarks)
        return bookmarks

    def find_bookmark_by_id(self, bookmark_id: str) -> Optional[Bookmark]:
        for bookmark in self.list_all_bookmarks():
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def find_group_by_id(self, group_id: str) -> Optional[BookmarkGroup]:
        for group in self.list_all_groups():
            if group.id == group_id:
                return group
        return None

    def group_containing_bookmark(self, bookmark_id: str) -> Optional[BookmarkGroup]:
        """The group holding the bookmark directly, None for root or unknown bookmarks"""
        for group in self.list_all_groups():
            if any(b.id == bookmark_id for b in group.bookmarks):
                return group
        return None

    def bookmarks_for_locator(self, locator: LocatorLike) -> List[Bookmark]:
        """All bookmarks pointing at exactly this locator"""
        target = str(Locator.coerce(locator))
        return [b for b in self.list_all_bookmarks() if str(b.locator) == target]

    def is_locator_bookmarked(self, locator: LocatorLike) -> bool:
        return len(self.bookmarks_for_locator(locator)) > 0

    # Mutations

    def add_bookmark(self, locator: LocatorLike, name: Optional[str] = None,
                     description: Optional[str] = None, group_id: Optional[str] = None) -> Bookmark:
        """Create a bookmark in the given group, or at the root if the group is unknown"""
        bookmark = Bookmark.create(locator, name, description)

        group = self.find_group_by_id(group_id) if group_id else None
        if group is not None:
            group.add_bookmark(bookmark)
        else:
            if group_id:
                logger.debug(f"Group {group_id} not found, adding bookmark {bookmark.name} at root")
            self._bookmarks.append(bookmark)

        self._changed()
        return bookmark

    def remove_bookmark(self, bookmark_id: str) -> bool:
        removed = self._detach_bookmark(bookmark_id)
        if removed:
            self._changed()
        return removed

    def create_group(self, name: str, description: Optional[str] = None,
                     parent_id: Optional[str] = None) -> BookmarkGroup:
        """Create a group under the given parent, or at the root if the parent is unknown"""
        group = BookmarkGroup.create(name, description)

        parent = self.find_group_by_id(parent_id) if parent_id else None
        if parent is not None:
            parent.add_group(group)
        else:
            self._groups.append(group)

        self._changed()
        return group

    def remove_group(self, group_id: str) -> bool:
        removed = self._detach_group(group_id)
        if removed:
            self._changed()
        return removed

    def update_group(self, group_id: str, name: Optional[str] = None,
                     description: Optional[str] = None) -> bool:
        """Rename and/or redescribe a group; None leaves a field unchanged"""
        group = self.find_group_by_id(group_id)
        if group is None:
            return False

        if name is not None:
            group.name = name
        if description is not None:
            group.description = description

        self._changed()
        return True

    def move_bookmark_to_group(self, bookmark_id: str, target_group_id: str) -> bool:
        bookmark = self.find_bookmark_by_id(bookmark_id)
        target_group = self.find_group_by_id(target_group_id)
        if bookmark is None or target_group is None:
            return False

        self._detach_bookmark(bookmark_id)
        target_group.add_bookmark(bookmark)

        self._changed()
        return True

    def move_group(self, group_id: str, new_parent_id: Optional[str] = None) -> bool:
        """
        Reattach a group under another group, or at the root when
        new_parent_id is None. Moving a group into itself or one of its
        descendants is refused.
        """
        group = self.find_group_by_id(group_id)
        if group is None:
            return False

        new_parent = None
        if new_parent_id is not None:
            new_parent = self.find_group_by_id(new_parent_id)
            if new_parent is None:
                return False
            if new_parent is group or group.is_ancestor_of(new_parent):
                logger.warning(f"Cannot move group {group.name} into its own subtree", group=group.name)
                return False

        self._detach_group(group_id)
        if new_parent is not None:
            new_parent.add_group(group)
        else:
            group.parent = None
            self._groups.append(group)

        self._changed()
        return True

    def _detach_bookmark(self, bookmark_id: str) -> bool:
        initial_length = len(self._bookmarks)
        self._bookmarks = [b for b in self._bookmarks if b.id != bookmark_id]
        if len(self._bookmarks) != initial_length:
            return True

        for group in self.list_all_groups():
            if group.remove_bookmark(bookmark_id):
                return True
        return False

    def _detach_group(self, group_id: str) -> bool:
        for group in self._groups:
            if group.id == group_id:
                self._groups.remove(group)
                group.parent = None
                return True

        for group in self.list_all_groups():
            if group.remove_group(group_id):
                return True
        return False

    # Editor

    async def open_bookmark(self, bookmark_id: str) -> bool:
        bookmark = self.find_bookmark_by_id(bookmark_id)
        if bookmark is None or self._editor is None:
            return False
        return await bookmark.open(self._editor, self._notifier) is not None

    async def open_group(self, group_id: str, policy: OpenPolicy = OpenPolicy.ABORT_ON_FAILURE) -> bool:
        """Open the group's own bookmarks; False if any open failed"""
        group = self.find_group_by_id(group_id)
        if group is None or self._editor is None:
            return False
        try:
            opened = await group.open_all(self._editor, self._notifier, policy)
        except ExternalOperationFailed as e:
            logger.error(f"Opening group stopped: {e}", group=group.name)
            return False
        return len(opened) == len(group.bookmarks)

    async def close_group(self, group_id: str, policy: ClosePolicy = ClosePolicy.BEST_EFFORT) -> bool:
        """Close the group's own bookmarks; False if any close failed"""
        group = self.find_group_by_id(group_id)
        if group is None or self._editor is None:
            return False
        try:
            closed = await group.close_all(self._editor, policy)
        except ExternalOperationFailed as e:
            logger.error(f"Closing group stopped: {e}", group=group.name)
            self._report_error(f"Failed to close files in group: {group.name}")
            return False
        return closed == len(group.bookmarks)

    def preview_group(self, group_id: str, workspace_root: Optional[LocatorLike] = None) -> List[Tuple[str, str, str]]:
        """(name, display path, description) for every bookmark under the group"""
        group = self.find_group_by_id(group_id)
        if group is None:
            return []
        return [(b.name, b.relative_path(workspace_root), b.description)
                for b in group.collect_all_bookmarks()]

    # Import / export

    def export_to_document(self) -> Dict[str, List[Dict]]:
        return {
            'bookmarks': [b.to_dict() for b in self._bookmarks],
            'groups': [g.to_dict() for g in self._groups],
        }

    def export_to_json(self, indent: int = 2) -> str:
        return json.dumps(self.export_to_document(), indent=indent, ensure_ascii=False)

    def import_from_document(self, document: Any, merge: bool = False) -> bool:
        """
        Load bookmarks and groups from a document.

        Without merge the current forest is replaced. Malformed records and
        records whose ids are already taken are skipped; the import only
        fails when the document itself is not an object.
        """
        if not isinstance(document, Mapping):
            logger.error(f"Failed to import bookmarks: expected an object, got {type(document).__name__}")
            return False

        if not merge:
            self._bookmarks = []
            self._groups = []

        bookmarks, groups = self._load_document(document)
        self._bookmarks.extend(bookmarks)
        self._groups.extend(groups)

        logger.info(f"Imported {len(bookmarks)} bookmarks and {len(groups)} groups (merge={merge})")
        self._changed()
        return True

    def import_from_json(self, text: str, merge: bool = False) -> bool:
        try:
            document = json.loads(text)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to import bookmarks: {e}")
            return False
        return self.import_from_document(document, merge)

    def export_to_file(self, file_path: Optional[Union[str, os.PathLike]] = None) -> Optional[Path]:
        """Write the export to file_path, or the default export location. Returns the path written"""
        path = Path(file_path) if file_path else PathManager(self._settings).default_export_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.export_to_json(), encoding='utf-8')
        except OSError as e:
            logger.error(f"Failed to export bookmarks to {path}: {e}")
            self._report_error(f"Failed to export bookmarks to {path}")
            return None
        if self._notifier is not None:
            self._notifier.show_info(f"Bookmarks exported to {path}")
        return path

    def import_from_file(self, file_path: Union[str, os.PathLike], merge: bool = False) -> bool:
        path = Path(file_path)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Failed to read bookmarks from {path}: {e}")
            self._report_error(f"Failed to import bookmarks from {path}")
            return False
        if not self.import_from_json(text, merge):
            self._report_error(f"Failed to import bookmarks from {path}")
            return False
        return True

    def _load_document(self, document: Mapping) -> Tuple[List[Bookmark], List[BookmarkGroup]]:
        """Deserialize each record on its own, skipping bad or clashing ones"""
        bookmark_ids: Set[str] = {b.id for b in self.list_all_bookmarks()}
        group_ids: Set[str] = {g.id for g in self.list_all_groups()}
        bookmarks: List[Bookmark] = []
        groups: List[BookmarkGroup] = []

        bookmarks_data = document.get('bookmarks')
        if isinstance(bookmarks_data, list):
            for bookmark_data in bookmarks_data:
                try:
                    bookmark = Bookmark.from_dict(bookmark_data)
                except MalformedRecordError as e:
                    logger.error(f"Failed to import bookmark: {e}")
                    continue
                if bookmark.id in bookmark_ids:
                    logger.warning(f"Skipping bookmark {bookmark.name}: id {bookmark.id} already exists")
                    continue
                bookmark_ids.add(bookmark.id)
                bookmarks.append(bookmark)

        groups_data = document.get('groups')
        if isinstance(groups_data, list):
            for group_data in groups_data:
                try:
                    group = BookmarkGroup.from_dict(group_data)
                except MalformedRecordError as e:
                    logger.error(f"Failed to import group: {e}")
                    continue
                new_group_ids = [g.id for g in group.walk()]
                new_bookmark_ids = [b.id for b in group.collect_all_bookmarks()]
                if (group_ids.intersection(new_group_ids) or bookmark_ids.intersection(new_bookmark_ids)
                        or len(set(new_group_ids)) != len(new_group_ids)
                        or len(set(new_bookmark_ids)) != len(new_bookmark_ids)):
                    logger.warning(f"Skipping group {group.name}: it reuses existing ids", group=group.name)
                    continue
                group_ids.update(new_group_ids)
                bookmark_ids.update(new_bookmark_ids)
                groups.append(group)

        return bookmarks, groups

    # Persistence

    def persist(self) -> bool:
        """Write the whole forest to the store"""
        key = self._settings.storage_key
        try:
            saved = self._store.set(key, self.export_to_document())
            if saved and self._settings.sync_enabled and hasattr(self._store, 'set_keys_for_sync'):
                self._store.set_keys_for_sync([key])
        except Exception as e:
            logger.error(f"Failed to save bookmarks state: {e}")
            saved = False

        if not saved:
            self._report_error("Failed to save bookmarks.")
        return bool(saved)

    def restore(self) -> bool:
        """
        Replace the forest with the stored document.
        A missing document yields an empty forest; an unreadable one is reported.
        """
        self._bookmarks = []
        self._groups = []

        try:
            document = self._store.get(self._settings.storage_key)
        except Exception as e:
            logger.error(f"Failed to load bookmarks state: {e}")
            self._report_error("Failed to load bookmarks. State may be corrupted.")
            return False

        if document is None:
            logger.info("No saved bookmarks found")
            return True

        if not isinstance(document, Mapping):
            logger.error(f"Failed to load bookmarks state: expected an object, got {type(document).__name__}")
            self._report_error("Failed to load bookmarks. State may be corrupted.")
            return False

        self._bookmarks, self._groups = self._load_document(document)
        logger.info(f"Restored {len(self._bookmarks)} root bookmarks and {len(self._groups)} root groups")
        self.data_changed.emit()
        return True

    def _changed(self) -> None:
        self.persist()
        self.data_changed.emit()

    def _report_error(self, message: str) -> None:
        if self._notifier is not None:
            self._notifier.show_error(message)


def create_default_manager(settings: Optional[Settings] = None) -> BookmarkManager:
    """Manager wired to the per-user JSON store and the desktop editor"""
    settings = settings or get_settings()
    paths = PathManager(settings)
    return BookmarkManager(
        JsonFileStore(paths.store_path),
        editor=SystemEditor(),
        notifier=LogNotifier(),
        settings=settings,
    )
