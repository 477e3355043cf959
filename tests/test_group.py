import asyncio

import pytest

from conftest import FakeEditor, RecordingNotifier, file_locator
from models import (Bookmark, BookmarkGroup, ClosePolicy, ExternalOperationFailed,
                    MalformedRecordError, OpenPolicy)


def make_bookmark(name):
    return Bookmark.create(file_locator(f'/files/{name}'), name)


def test_create_group():
    parent = BookmarkGroup.create('parent')
    group = BookmarkGroup.create('docs', None, parent)
    assert group.description == ''
    assert group.parent is parent
    assert group.bookmarks == [] and group.children == []
    assert group.is_empty()


def test_add_bookmark_ignores_duplicate_ids():
    group = BookmarkGroup.create('g')
    bookmark = make_bookmark('a')
    group.add_bookmark(bookmark)
    group.add_bookmark(bookmark)
    assert group.bookmarks == [bookmark]
    assert not group.is_empty()


def test_remove_bookmark_only_searches_own_bookmarks():
    group = BookmarkGroup.create('g')
    child = BookmarkGroup.create('child')
    group.add_group(child)
    nested = make_bookmark('nested')
    child.add_bookmark(nested)

    assert group.remove_bookmark(nested.id) is False
    assert child.remove_bookmark(nested.id) is True
    assert child.remove_bookmark(nested.id) is False


def test_add_group_sets_parent_and_ignores_duplicates():
    group = BookmarkGroup.create('g')
    child = BookmarkGroup.create('child')
    group.add_group(child)
    group.add_group(child)
    assert group.children == [child]
    assert child.parent is group


def test_add_group_overwrites_parent_without_detaching():
    first = BookmarkGroup.create('first')
    second = BookmarkGroup.create('second')
    child = BookmarkGroup.create('child')
    first.add_group(child)
    second.add_group(child)
    assert child.parent is second
    assert first.children == [child]


def test_remove_group_only_direct_children():
    group = BookmarkGroup.create('g')
    child = BookmarkGroup.create('child')
    grandchild = BookmarkGroup.create('grandchild')
    group.add_group(child)
    child.add_group(grandchild)

    assert group.remove_group(grandchild.id) is False
    assert group.remove_group(child.id) is True
    assert child.parent is None
    assert group.is_empty()


def test_collect_all_bookmarks_is_depth_first():
    group = BookmarkGroup.create('root')
    a = BookmarkGroup.create('A')
    b = BookmarkGroup.create('B')
    x, y, z, w = (make_bookmark(n) for n in 'xyzw')
    group.add_group(a)
    group.add_group(b)
    a.add_bookmark(x)
    b.add_bookmark(y)
    group.add_bookmark(z)
    deep = BookmarkGroup.create('deep')
    a.add_group(deep)
    deep.add_bookmark(w)

    assert [bm.name for bm in group.collect_all_bookmarks()] == ['z', 'x', 'w', 'y']


def test_walk_is_pre_order():
    root = BookmarkGroup.create('root')
    a = BookmarkGroup.create('a')
    a1 = BookmarkGroup.create('a1')
    b = BookmarkGroup.create('b')
    root.add_group(a)
    a.add_group(a1)
    root.add_group(b)
    assert [g.name for g in root.walk()] == ['root', 'a', 'a1', 'b']
    assert root.is_ancestor_of(a1)
    assert not a1.is_ancestor_of(root)


def test_round_trip_preserves_tree():
    root = BookmarkGroup.create('root', 'top level')
    child = BookmarkGroup.create('child')
    root.add_group(child)
    root.add_bookmark(make_bookmark('a'))
    child.add_bookmark(make_bookmark('b'))

    restored = BookmarkGroup.from_dict(root.to_dict())

    assert restored == root
    assert restored.children[0].parent is restored
    assert restored.parent is None
    assert restored.to_dict() == root.to_dict()


def test_from_dict_skips_malformed_nested_records():
    record = BookmarkGroup.create('root').to_dict()
    record['bookmarks'] = [make_bookmark('ok').to_dict(), {'id': 'broken'}]
    record['groups'] = [{'name': 'no id'}, BookmarkGroup.create('fine').to_dict()]

    restored = BookmarkGroup.from_dict(record)

    assert [b.name for b in restored.bookmarks] == ['ok']
    assert [g.name for g in restored.children] == ['fine']


def test_from_dict_tolerates_missing_collections():
    restored = BookmarkGroup.from_dict({'id': 'g1', 'name': 'bare'})
    assert restored.is_empty()


@pytest.mark.parametrize('record', [
    {'name': 'no id'},
    {'id': 'g1'},
    {'id': 'g1', 'name': 'n', 'bookmarks': 'nope'},
    {'id': 'g1', 'name': 'n', 'groups': {}},
    'group',
])
def test_from_dict_rejects_malformed_group(record):
    with pytest.raises(MalformedRecordError):
        BookmarkGroup.from_dict(record)


def test_open_all_opens_own_bookmarks_in_order():
    group = BookmarkGroup.create('g')
    child = BookmarkGroup.create('child')
    group.add_group(child)
    child.add_bookmark(make_bookmark('nested'))
    group.add_bookmark(make_bookmark('a'))
    group.add_bookmark(make_bookmark('b'))
    editor = FakeEditor()

    opened = asyncio.run(group.open_all(editor))

    assert opened == ['editor:/files/a', 'editor:/files/b']
    assert editor.opened == ['file:///files/a', 'file:///files/b']


def test_open_all_aborts_on_first_failure():
    group = BookmarkGroup.create('g')
    a, broken, c = make_bookmark('a'), make_bookmark('broken'), make_bookmark('c')
    for bookmark in (a, broken, c):
        group.add_bookmark(bookmark)
    editor = FakeEditor(fail_open=[broken.locator])
    notifier = RecordingNotifier()

    with pytest.raises(ExternalOperationFailed):
        asyncio.run(group.open_all(editor, notifier))

    assert editor.opened == ['file:///files/a']
    assert notifier.errors == ['Failed to open bookmark: broken']


def test_open_all_best_effort_continues():
    group = BookmarkGroup.create('g')
    a, broken, c = make_bookmark('a'), make_bookmark('broken'), make_bookmark('c')
    for bookmark in (a, broken, c):
        group.add_bookmark(bookmark)
    editor = FakeEditor(fail_open=[broken.locator])

    opened = asyncio.run(group.open_all(editor, policy=OpenPolicy.BEST_EFFORT))

    assert len(opened) == 2
    assert editor.opened == ['file:///files/a', 'file:///files/c']


def test_close_all_continues_past_failures():
    group = BookmarkGroup.create('g')
    a, raising, failing, d = (make_bookmark(n) for n in ('a', 'raising', 'failing', 'd'))
    for bookmark in (a, raising, failing, d):
        group.add_bookmark(bookmark)
    editor = FakeEditor(fail_close=[failing.locator], raise_on_close=[raising.locator])

    closed = asyncio.run(group.close_all(editor))

    assert closed == 2
    assert editor.closed == ['file:///files/a', 'file:///files/d']


def test_close_all_can_abort():
    group = BookmarkGroup.create('g')
    raising, d = make_bookmark('raising'), make_bookmark('d')
    group.add_bookmark(raising)
    group.add_bookmark(d)
    editor = FakeEditor(raise_on_close=[raising.locator])

    with pytest.raises(ExternalOperationFailed):
        asyncio.run(group.close_all(editor, ClosePolicy.ABORT_ON_FAILURE))
    assert editor.closed == []
