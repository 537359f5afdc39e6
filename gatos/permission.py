"""File modes, ownership checks and the effective identity of a session."""

import enum
from contextlib import contextmanager
from dataclasses import dataclass

SUPER_USER = 0

R_BIT = 4
W_BIT = 2
X_BIT = 1

S_IRUSR = 0x400
S_IWUSR = 0x200
S_IXUSR = 0x100
S_IRGRP = 0x040
S_IWGRP = 0x020
S_IXGRP = 0x010
S_IROTH = 0x004
S_IWOTH = 0x002
S_IXOTH = 0x001

S_IRWXU = S_IRUSR | S_IWUSR | S_IXUSR
S_IRWXG = S_IRGRP | S_IWGRP | S_IXGRP
S_IRWXO = S_IROTH | S_IWOTH | S_IXOTH

PERMISSION_MASK = S_IRWXU | S_IRWXG | S_IRWXO
TYPE_MASK = 0xF000
DEFAULT_PERMISSIONS = 0x755


class FileType(enum.IntEnum):
    FILE = 0x1000
    DIRECTORY = 0x2000
    CHARDEVICE = 0x3000
    BLOCKDEVICE = 0x4000
    PIPE = 0x5000
    SYMLINK = 0x6000
    SOCKET = 0x7000


_TYPE_LETTERS = {
    FileType.SOCKET: "s",
    FileType.SYMLINK: "l",
    FileType.FILE: "-",
    FileType.BLOCKDEVICE: "b",
    FileType.DIRECTORY: "d",
    FileType.CHARDEVICE: "c",
    FileType.PIPE: "p",
}

_PERMISSION_LETTERS = (
    (S_IRUSR, "r"), (S_IWUSR, "w"), (S_IXUSR, "x"),
    (S_IRGRP, "r"), (S_IWGRP, "w"), (S_IXGRP, "x"),
    (S_IROTH, "r"), (S_IWOTH, "w"), (S_IXOTH, "x"),
)


def file_type(mask):
    """Return the FileType encoded in ``mask``, or None if it is unknown."""
    try:
        return FileType(mask & TYPE_MASK)
    except ValueError:
        return None


def mask_string(mask):
    """Render a mode the way a long listing shows it, e.g. ``drwxr-xr-x``."""
    letter = _TYPE_LETTERS.get(file_type(mask), "u")
    bits = "".join(char if mask & bit else "-" for bit, char in _PERMISSION_LETTERS)
    return letter + bits


@dataclass
class Session:
    """The effective user and group of whoever is issuing requests."""

    euid: int = SUPER_USER
    egid: int = SUPER_USER

    @contextmanager
    def sudo(self):
        """Act as the super user for the duration of the block."""
        saved = (self.euid, self.egid)
        self.euid = SUPER_USER
        self.egid = SUPER_USER
        try:
            yield self
        finally:
            self.euid, self.egid = saved


def is_owner(session, uid):
    """Return whether the session may act as the owner ``uid``."""
    return session.euid == SUPER_USER or session.euid == uid


def group_is_owner(session, gid):
    """Return whether the session may act as the owner of group ``gid``."""
    return session.euid == SUPER_USER or session.euid == gid


def file_has_access(session, node, access):
    """Return whether the session holds every ``access`` bit on ``node``."""
    if session.euid == SUPER_USER:
        return True
    if session.euid == node.uid:
        wanted = access << 8
    elif session.egid == node.gid:
        wanted = access << 4
    else:
        wanted = access
    return (node.mask & wanted) == wanted