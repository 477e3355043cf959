import os
import tempfile

# Keep logs and stores out of the real user data directory
os.environ.setdefault("FILE_BOOKMARKS_DATA_DIR", tempfile.mkdtemp(prefix="file-bookmarks-tests-"))

import copy

import pytest

from models import BookmarkManager, Locator
from utils.config import Settings


class MemoryStore:
    def __init__(self, initial=None):
        self.data = dict(initial or {})
        self.writes = 0
        self.sync_keys = []

    def get(self, key):
        value = self.data.get(key)
        return copy.deepcopy(value)

    def set(self, key, document):
        self.writes += 1
        self.data[key] = copy.deepcopy(document)
        return True

    def set_keys_for_sync(self, keys):
        self.sync_keys = list(keys)


class FailingStore(MemoryStore):
    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, document):
        raise OSError("disk unavailable")


class FakeEditor:
    def __init__(self, fail_open=(), fail_close=(), raise_on_close=()):
        self.fail_open = {str(l) for l in fail_open}
        self.fail_close = {str(l) for l in fail_close}
        self.raise_on_close = {str(l) for l in raise_on_close}
        self.opened = []
        self.closed = []

    async def open_file(self, locator):
        if str(locator) in self.fail_open:
            raise FileNotFoundError(locator.path)
        self.opened.append(str(locator))
        return f"editor:{locator.path}"

    async def close_tabs_for_locator(self, locator):
        if str(locator) in self.raise_on_close:
            raise RuntimeError("tab group disposed")
        if str(locator) in self.fail_close:
            return False
        self.closed.append(str(locator))
        return True


class RecordingNotifier:
    def __init__(self):
        self.errors = []
        self.infos = []

    def show_error(self, message):
        self.errors.append(message)

    def show_info(self, message):
        self.infos.append(message)


def file_locator(path):
    return Locator(scheme='file', path=path)


@pytest.fixture
def settings():
    return Settings(storage_key="test.data", sync_enabled=True)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def editor():
    return FakeEditor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def manager(store, editor, notifier, settings):
    return BookmarkManager(store, editor=editor, notifier=notifier, settings=settings)


@pytest.fixture
def events(manager):
    received = []
    manager.data_changed.connect(lambda: received.append(True))
    return received
