from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union, TYPE_CHECKING
import os

from utils.utils import format_timestamp, logger, new_id, parse_timestamp, utc_now
from .errors import ExternalOperationFailed, MalformedRecordError
from .locator import Locator

if TYPE_CHECKING:
    from .editor import Editor, Notifier

class OpenPolicy(Enum):
    """What a group does when one of its bookmarks fails to open"""
    ABORT_ON_FAILURE = "abort_on_failure"
    BEST_EFFORT = "best_effort"

class ClosePolicy(Enum):
    """What a group does when one of its bookmarks fails to close"""
    ABORT_ON_FAILURE = "abort_on_failure"
    BEST_EFFORT = "best_effort"

def _require_str(record: Dict, key: str, kind: str, allow_empty: bool = False) -> str:
    value = record.get(key)
    if not isinstance(value, str) or (not value and not allow_empty):
        raise MalformedRecordError(f"{kind} record is missing '{key}'", record)
    return value

def _read_created_at(record: Dict, kind: str) -> datetime:
    raw = record.get('createdAt')
    if raw is None:
        return utc_now()
    created_at = parse_timestamp(raw)
    if created_at is None:
        raise MalformedRecordError(f"{kind} record has an invalid createdAt: {raw!r}", record)
    return created_at

@dataclass
class Bookmark:
    """A named pointer to a file"""
    locator: Locator
    name: str = ''
    description: str = ''
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not self.name:
            self.name = self.locator.basename
        if self.description is None:
            self.description = ''

    @classmethod
    def create(cls, locator: Union[Locator, str, os.PathLike], name: Optional[str] = None,
               description: Optional[str] = None) -> 'Bookmark':
        """Create a bookmark with a fresh id, defaulting the name to the file name"""
        return cls(locator=Locator.coerce(locator), name=name or '', description=description or '')

    async def open(self, editor: 'Editor', notifier: Optional['Notifier'] = None) -> Optional[Any]:
        """
        Show the bookmarked file in the editor.
        Best effort: failures are logged and reported, and None is returned.
        """
        try:
            result = await editor.open_file(self.locator)
        except Exception as e:
            logger.error(f"Failed to open bookmark {self.name} ({self.locator}): {e}")
            result = None
        else:
            if not result:
                logger.error(f"Editor could not open bookmark {self.name} ({self.locator})")

        if not result:
            if notifier is not None:
                notifier.show_error(f"Failed to open bookmark: {self.name}")
            return None
        return result

    def relative_path(self, root: Optional[Union[str, os.PathLike]] = None) -> str:
        """Path for display, relative to root when the file lives under it"""
        if root is None or self.locator.scheme != 'file':
            return self.locator.path
        try:
            return self.locator.fs_path.relative_to(Path(root)).as_posix()
        except ValueError:
            return self.locator.path

    def to_dict(self) -> Dict:
        """Serialize the bookmark to a plain dictionary"""
        return {
            'id': self.id,
            'uri': str(self.locator),
            'name': self.name,
            'description': self.description,
            'createdAt': format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Bookmark':
        """Rebuild a bookmark, keeping its original id and creation time"""
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Bookmark record must be an object, got {type(data).__name__}", data)

        bookmark_id = _require_str(data, 'id', 'Bookmark')
        locator = Locator.parse(_require_str(data, 'uri', 'Bookmark'))
        name = data.get('name')
        description = data.get('description')

        return cls(
            id=bookmark_id,
            locator=locator,
            name=name if isinstance(name, str) else '',
            description=description if isinstance(description, str) else '',
            created_at=_read_created_at(data, 'Bookmark'),
        )

@dataclass
class BookmarkGroup:
    """A named container of bookmarks and child groups"""
    name: str
    description: str = ''
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    bookmarks: List[Bookmark] = field(default_factory=list)
    children: List['BookmarkGroup'] = field(default_factory=list)
    # Upward link only; ownership runs from parent to children
    parent: Optional['BookmarkGroup'] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.description is None:
            self.description = ''

    @classmethod
    def create(cls, name: str, description: Optional[str] = None,
               parent: Optional['BookmarkGroup'] = None) -> 'BookmarkGroup':
        return cls(name=name, description=description or '', parent=parent)

    def add_bookmark(self, bookmark: Bookmark) -> None:
        """Append a bookmark unless one with the same id is already here"""
        if any(b.id == bookmark.id for b in self.bookmarks):
            return
        self.bookmarks.append(bookmark)

    def remove_bookmark(self, bookmark_id: str) -> bool:
        """Remove one of this group's own bookmarks by id"""
        initial_length = len(self.bookmarks)
        self.bookmarks = [b for b in self.bookmarks if b.id != bookmark_id]
        return len(self.bookmarks) != initial_length

    def add_group(self, group: 'BookmarkGroup') -> None:
        """
        Attach a child group.

        The child's parent is always set to this group, but the child is not
        detached from a previous parent. Use BookmarkManager.move_group to
        reattach an existing group.
        """
        if not any(g.id == group.id for g in self.children):
            self.children.append(group)
        group.parent = self

    def remove_group(self, group_id: str) -> bool:
        """Remove a direct child group by id"""
        kept = []
        removed = False
        for child in self.children:
            if child.id == group_id:
                child.parent = None
                removed = True
            else:
                kept.append(child)
        self.children = kept
        return removed

    def is_empty(self) -> bool:
        return not self.bookmarks and not self.children

    def collect_all_bookmarks(self) -> List[Bookmark]:
        """Own bookmarks first, then every descendant's, depth-first"""
        collected = list(self.bookmarks)
        for child in self.children:
            collected.extend(child.collect_all_bookmarks())
        return collected

    def walk(self) -> Iterator['BookmarkGroup']:
        """Yield this group and all of its descendants in pre-order"""
        yield self
        for child in list(self.children):
            yield from child.walk()

    def is_ancestor_of(self, group: 'BookmarkGroup') -> bool:
        current = group.parent
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    async def open_all(self, editor: 'Editor', notifier: Optional['Notifier'] = None,
                       policy: OpenPolicy = OpenPolicy.ABORT_ON_FAILURE) -> List[Any]:
        """Open this group's own bookmarks one after the other"""
        opened = []
        for bookmark in list(self.bookmarks):
            result = await bookmark.open(editor, notifier)
            if result is None:
                if policy is OpenPolicy.ABORT_ON_FAILURE:
                    raise ExternalOperationFailed("open", str(bookmark.locator))
                continue
            opened.append(result)
        return opened

    async def close_all(self, editor: 'Editor', policy: ClosePolicy = ClosePolicy.BEST_EFFORT) -> int:
        """Close the editor tabs of this group's own bookmarks"""
        closed = 0
        for bookmark in list(self.bookmarks):
            try:
                if not await editor.close_tabs_for_locator(bookmark.locator):
                    raise ExternalOperationFailed("close", str(bookmark.locator))
            except Exception as e:
                if policy is ClosePolicy.ABORT_ON_FAILURE:
                    if isinstance(e, ExternalOperationFailed):
                        raise
                    raise ExternalOperationFailed("close", str(bookmark.locator), e) from e
                logger.error(f"Error closing bookmark {bookmark.name}: {e}", group=self.name)
                continue
            closed += 1
        return closed

    def to_dict(self) -> Dict:
        """Serialize the group and everything below it"""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'bookmarks': [b.to_dict() for b in self.bookmarks],
            'groups': [g.to_dict() for g in self.children],
            'createdAt': format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BookmarkGroup':
        """
        Rebuild a group tree from its serialized form.

        Malformed bookmark or child group records are logged and skipped;
        only a malformed record for this group itself raises.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Group record must be an object, got {type(data).__name__}", data)

        bookmarks_data = data.get('bookmarks', [])
        groups_data = data.get('groups', [])
        if not isinstance(bookmarks_data, list) or not isinstance(groups_data, list):
            raise MalformedRecordError("Group record 'bookmarks' and 'groups' must be lists", data)

        description = data.get('description')
        group = cls(
            id=_require_str(data, 'id', 'Group'),
            # Groups may be renamed to an empty string
            name=_require_str(data, 'name', 'Group', allow_empty=True),
            description=description if isinstance(description, str) else '',
            created_at=_read_created_at(data, 'Group'),
        )

        for bookmark_data in bookmarks_data:
            try:
                group.add_bookmark(Bookmark.from_dict(bookmark_data))
            except MalformedRecordError as e:
                logger.warning(f"Skipping malformed bookmark: {e}", group=group.name)

        # Recursively create children
        for child_data in groups_data:
            try:
                group.add_group(BookmarkGroup.from_dict(child_data))
            except MalformedRecordError as e:
                logger.warning(f"Skipping malformed group: {e}", group=group.name)

        return group
