"""A hierarchical file system stored through a DiskManager.

A directory's contents are a sequence of entries, each an inode number
followed by a fixed-size name.  Every directory starts with a link to the
root, a link to itself and a link to its parent.  A removed entry keeps
its slot with the inode number set to all ones, and the slot is reused.
"""

import itertools
import struct
from dataclasses import dataclass

from gatos.disk_manager import MAX_NAME_LENGTH, FileHeader
from gatos.permission import (
    DEFAULT_PERMISSIONS,
    PERMISSION_MASK,
    TYPE_MASK,
    W_BIT,
    FileType,
    file_has_access,
)
from gatos.permission import file_type as type_of_mask

ROOT_INODE = 0
ROOT_MODE = 0x777

_ENTRY = struct.Struct(f"<I{MAX_NAME_LENGTH}s")
ENTRY_SIZE = _ENTRY.size
_REMOVED = 0xFFFFFFFF
_RESERVED_ENTRIES = 3
_COPY_CHUNK = 512


class FsError(Exception):
    """Base class for file-system errors."""


class PermissionDeniedError(FsError):
    """Raised when the session lacks the access a request needs."""


class EntryExistsError(FsError):
    """Raised when a directory already holds an entry of that name."""


class EntryNotFoundError(FsError):
    """Raised when a directory holds no such entry."""


class IsDirectoryError(FsError):
    """Raised when an operation on plain files is given a directory."""


@dataclass
class FsNode:
    """A snapshot of a file's attributes."""

    name: str
    inode: int
    uid: int = 0
    gid: int = 0
    flags: int = 0
    impl: int = 0
    mask: int = 0

    @property
    def file_type(self):
        return type_of_mask(self.mask)

    @property
    def is_directory(self):
        return self.file_type is FileType.DIRECTORY


def _pack_entry(inode, name):
    raw = name.encode("utf-8")
    if b"\0" in raw or len(raw) >= MAX_NAME_LENGTH:
        raise ValueError(
            f"file name {name!r} must be shorter than {MAX_NAME_LENGTH} bytes "
            "and hold no NUL character"
        )
    return _ENTRY.pack(inode, raw)


class FileSystem:
    """Directories and files on top of a DiskManager, checked against a session."""

    def __init__(self, manager, session):
        self.manager = manager
        self.session = session
        if not manager.validate_header():
            self._format()

    # -- nodes ----------------------------------------------------------

    def root(self):
        return self.node(ROOT_INODE)

    def node(self, inode):
        """Return the attributes of ``inode``."""
        header = self.manager.read_inode(inode)
        return FsNode(
            name=header.name,
            inode=inode,
            uid=header.uid,
            gid=header.gid,
            flags=header.flags,
            impl=header.impl,
            mask=header.mask,
        )

    # -- directories ----------------------------------------------------

    def readdir(self, directory, index):
        """Return the ``index``-th live entry after the root link, or None."""
        self._require_directory(directory)
        live = (
            inode
            for inode, _ in self._entries(directory.inode)[1:]
            if inode != _REMOVED
        )
        inode = next(itertools.islice(live, index, None), None)
        return None if inode is None else self.node(inode)

    def finddir(self, directory, name):
        """Return the entry called ``name`` in ``directory``, or None."""
        self._require_directory(directory)
        for inode, entry_name in self._entries(directory.inode):
            if inode != _REMOVED and entry_name == name:
                return self.node(inode)
        return None

    def create(self, directory, name, file_type):
        """Create an entry of ``file_type`` in ``directory``; return its inode."""
        self._require_directory(directory)
        kind = FileType(file_type)
        _pack_entry(0, name)
        if not file_has_access(self.session, directory, W_BIT):
            raise PermissionDeniedError(f"no write access to {directory.name}")
        if self.finddir(directory, name) is not None:
            raise EntryExistsError(f"{name} already exists")
        inode = self.manager.next_inode()
        if kind is FileType.DIRECTORY:
            self._init_directory(inode, name, directory.inode)
        else:
            self._init_inode(inode, name, kind | DEFAULT_PERMISSIONS)
        self._append(directory.inode, inode)
        return inode

    def remove(self, directory, inode):
        """Unlink ``inode`` from ``directory`` and free it."""
        self._require_directory(directory)
        entries = self._entries(directory.inode)
        for position, (entry_inode, _) in enumerate(
            entries[_RESERVED_ENTRIES:], start=_RESERVED_ENTRIES
        ):
            if entry_inode == inode:
                self.manager.write_contents(
                    directory.inode,
                    struct.pack("<I", _REMOVED),
                    position * ENTRY_SIZE,
                )
                self.manager.delete(inode)
                return
        raise EntryNotFoundError(f"inode {inode} is not in {directory.name}")

    # -- contents -------------------------------------------------------

    def read(self, node, offset, size):
        """Return up to ``size`` bytes of ``node`` starting at ``offset``."""
        length = self.manager.size(node.inode)
        if offset > length:
            return b""
        size = min(size, length - offset)
        return self.manager.read_contents(node.inode, size, offset)

    def write(self, node, offset, data):
        """Store ``data`` at ``offset`` in ``node``; return the bytes written."""
        data = bytes(data)
        self.manager.write_contents(node.inode, data, offset)
        return len(data)

    def size(self, node):
        return self.manager.size(node.inode)

    # -- attributes -----------------------------------------------------

    def set_mode(self, inode, mode):
        """Replace the permission bits of ``inode``, keeping its type."""
        header = self.manager.read_inode(inode)
        self.manager.set_file_mode(
            inode, (header.mask & TYPE_MASK) | (mode & PERMISSION_MASK)
        )

    def set_uid(self, inode, uid):
        self.manager.set_file_uid(inode, uid)

    def set_gid(self, inode, gid):
        self.manager.set_file_gid(inode, gid)

    def clone(self, folder, node, name):
        """Copy the plain file ``node`` into ``folder`` as ``name``."""
        if node.is_directory:
            raise IsDirectoryError(f"{node.name} is a directory")
        self.create(folder, name, node.file_type)
        destination = self.finddir(folder, name)
        header = self.manager.read_inode(destination.inode)
        header.flags = node.flags
        header.impl = node.impl
        self.manager.write_inode(destination.inode, header)
        offset = 0
        while chunk := self.read(node, offset, _COPY_CHUNK):
            self.write(destination, offset, chunk)
            offset += len(chunk)
        return self.node(destination.inode)

    # -- internals ------------------------------------------------------

    def _format(self):
        self.manager.write_header()
        root = self.manager.next_inode()
        self._init_directory(root, "/", root)
        self.set_mode(root, ROOT_MODE)
        root_node = self.node(root)
        for name in ("dev", "home", "etc"):
            self.create(root_node, name, FileType.DIRECTORY)

    def _init_inode(self, inode, name, mask):
        self.manager.create_inode(
            inode,
            FileHeader(
                name=name,
                uid=self.session.euid,
                gid=self.session.egid,
                flags=0,
                impl=0,
                mask=mask,
            ),
        )

    def _init_directory(self, inode, name, parent):
        self._init_inode(inode, name, FileType.DIRECTORY | DEFAULT_PERMISSIONS)
        self._append(inode, ROOT_INODE, "\\")
        self._append(inode, inode, ".")
        self._append(inode, parent, "..")

    def _append(self, directory_inode, file_inode, name=None):
        if name is None:
            name = self.manager.get_file_name(file_inode)
        header = self.manager.read_inode(directory_inode)
        if type_of_mask(header.mask) is not FileType.DIRECTORY:
            raise FsError(f"cannot add {name} to {header.name}: not a directory")
        packed = _pack_entry(file_inode, name)
        for position, (inode, _) in enumerate(self._entries(directory_inode)):
            if inode == _REMOVED:
                self.manager.write_contents(directory_inode, packed, position * ENTRY_SIZE)
                return
        self.manager.write_contents(
            directory_inode, packed, self.manager.size(directory_inode)
        )

    def _entries(self, directory_inode):
        length = self.manager.size(directory_inode)
        raw = self.manager.read_contents(directory_inode, length, 0)
        raw = raw[: len(raw) - len(raw) % ENTRY_SIZE]
        return [
            (inode, name.split(b"\0", 1)[0].decode("utf-8", errors="replace"))
            for inode, name in _ENTRY.iter_unpack(raw)
        ]

    @staticmethod
    def _require_directory(node):
        if not node.is_directory:
            raise FsError(f"{node.name} is not a directory")