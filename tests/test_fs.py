import pytest

from gatos.disk import AtaDisks
from gatos.disk_manager import DiskManager
from gatos.fs import (
    EntryExistsError,
    EntryNotFoundError,
    FileSystem,
    FsError,
    IsDirectoryError,
    PermissionDeniedError,
)
from gatos.permission import PERMISSION_MASK, TYPE_MASK, FileType, Session


@pytest.fixture
def manager():
    return DiskManager(AtaDisks(2048))


@pytest.fixture
def fs(manager):
    return FileSystem(manager, Session(0, 0))


def _listing(fs, directory):
    names = []
    index = 0
    while (node := fs.readdir(directory, index)) is not None:
        names.append(node.name)
        index += 1
    return names


def test_fresh_root_listing(fs):
    root = fs.root()
    assert _listing(fs, root) == ["/", "/", "dev", "home", "etc"]


def test_root_is_directory(fs):
    root = fs.root()
    assert root.name == "/"
    assert root.is_directory


def test_root_links_point_to_root(fs):
    root = fs.root()
    assert fs.finddir(root, ".").inode == root.inode
    assert fs.finddir(root, "..").inode == root.inode
    assert fs.finddir(root, "\\").inode == root.inode


def test_subdirectory_links(fs):
    root = fs.root()
    inode = fs.create(root, "sub", FileType.DIRECTORY)
    sub = fs.node(inode)
    assert fs.finddir(sub, "..").inode == root.inode
    assert fs.finddir(sub, ".").inode == inode
    assert _listing(fs, sub)[2:] == []


def test_write_and_read_round_trip(fs):
    root = fs.root()
    node = fs.node(fs.create(root, "notes", FileType.FILE))
    data = bytes(range(256)) * 3
    assert fs.write(node, 0, data) == len(data)
    assert fs.size(node) == len(data)
    assert fs.read(node, 0, len(data)) == data
    assert fs.read(node, 100, 50) == data[100:150]


def test_read_is_clamped(fs):
    root = fs.root()
    node = fs.node(fs.create(root, "short", FileType.FILE))
    fs.write(node, 0, b"hello")
    assert fs.read(node, 2, 100) == b"llo"
    assert fs.read(node, 10, 4) == b""


def test_create_duplicate_raises(fs):
    root = fs.root()
    fs.create(root, "twice", FileType.FILE)
    with pytest.raises(EntryExistsError):
        fs.create(root, "twice", FileType.FILE)


def test_create_needs_write_access(fs, manager):
    other = FileSystem(manager, Session(5, 5))
    dev = other.finddir(other.root(), "dev")
    with pytest.raises(PermissionDeniedError):
        other.create(dev, "thing", FileType.FILE)


def test_created_file_owned_by_session(fs, manager):
    other = FileSystem(manager, Session(5, 6))
    inode = other.create(other.root(), "mine", FileType.FILE)
    node = other.node(inode)
    assert (node.uid, node.gid) == (5, 6)
    assert node.file_type is FileType.FILE


def test_existing_storage_is_not_reformatted(fs, manager):
    root = fs.root()
    node = fs.node(fs.create(root, "kept", FileType.FILE))
    fs.write(node, 0, b"data")
    again = FileSystem(manager, Session(0, 0))
    found = again.finddir(again.root(), "kept")
    assert again.read(found, 0, 4) == b"data"


def test_remove_and_reuse_slot(fs):
    root = fs.root()
    first = fs.create(root, "a", FileType.FILE)
    fs.create(root, "b", FileType.FILE)
    fs.remove(root, first)
    assert fs.finddir(root, "a") is None
    fs.create(root, "c", FileType.FILE)
    assert _listing(fs, root)[2:] == ["dev", "home", "etc", "c", "b"]


def test_remove_missing_raises(fs):
    root = fs.root()
    inode = fs.create(root, "gone", FileType.FILE)
    fs.remove(root, inode)
    with pytest.raises(EntryNotFoundError):
        fs.remove(root, inode)


def test_remove_frees_inode(fs):
    root = fs.root()
    inode = fs.create(root, "temp", FileType.FILE)
    fs.remove(root, inode)
    assert fs.create(root, "next", FileType.FILE) == inode


def test_readdir_on_file_raises(fs):
    root = fs.root()
    node = fs.node(fs.create(root, "plain", FileType.FILE))
    with pytest.raises(FsError):
        fs.readdir(node, 0)
    with pytest.raises(FsError):
        fs.create(node, "inner", FileType.FILE)


def test_name_too_long_rejected(fs):
    with pytest.raises(ValueError):
        fs.create(fs.root(), "x" * 40, FileType.FILE)


def test_set_mode_keeps_type(fs):
    root = fs.root()
    inode = fs.create(root, "moded", FileType.FILE)
    fs.set_mode(inode, 0x640 | 0x8000)
    node = fs.node(inode)
    assert node.mask & TYPE_MASK == FileType.FILE
    assert node.mask & PERMISSION_MASK == 0x640


def test_set_owner(fs):
    root = fs.root()
    inode = fs.create(root, "owned", FileType.FILE)
    fs.set_uid(inode, 12)
    fs.set_gid(inode, 13)
    node = fs.node(inode)
    assert (node.uid, node.gid) == (12, 13)


def test_clone_copies_contents(fs):
    root = fs.root()
    source = fs.node(fs.create(root, "src", FileType.FILE))
    data = bytes(range(200)) * 7
    fs.write(source, 0, data)
    copy = fs.clone(root, source, "dst")
    assert copy.name == "dst"
    assert fs.size(copy) == len(data)
    assert fs.read(copy, 0, len(data)) == data
    assert fs.read(source, 0, len(data)) == data


def test_clone_directory_raises(fs):
    root = fs.root()
    home = fs.finddir(root, "home")
    with pytest.raises(IsDirectoryError):
        fs.clone(root, home, "copy")


def test_clone_to_existing_name_raises(fs):
    root = fs.root()
    source = fs.node(fs.create(root, "one", FileType.FILE))
    fs.create(root, "two", FileType.FILE)
    with pytest.raises(EntryExistsError):
        fs.clone(root, source, "two")