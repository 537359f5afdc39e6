from dataclasses import dataclass

import pytest

from gatos.permission import (
    DEFAULT_PERMISSIONS,
    R_BIT,
    SUPER_USER,
    W_BIT,
    X_BIT,
    FileType,
    Session,
    file_has_access,
    file_type,
    group_is_owner,
    is_owner,
    mask_string,
)


@dataclass
class _Node:
    uid: int
    gid: int
    mask: int


@pytest.mark.parametrize(
    "kind, letter",
    [
        (FileType.SOCKET, "s"),
        (FileType.SYMLINK, "l"),
        (FileType.FILE, "-"),
        (FileType.BLOCKDEVICE, "b"),
        (FileType.DIRECTORY, "d"),
        (FileType.CHARDEVICE, "c"),
        (FileType.PIPE, "p"),
    ],
)
def test_mask_string_type_letter(kind, letter):
    text = mask_string(kind)
    assert text[0] == letter
    assert text[1:] == "-" * 9


def test_mask_string_unknown_type():
    assert mask_string(0)[0] == "u"


def test_mask_string_directory_default():
    assert mask_string(FileType.DIRECTORY | DEFAULT_PERMISSIONS) == "drwxr-xr-x"


def test_mask_string_file_readable():
    assert mask_string(FileType.FILE | 0x644) == "-rw-r--r--"


def test_mask_string_length():
    assert len(mask_string(FileType.FILE | 0x777)) == 10


def test_file_type_round_trip():
    for kind in FileType:
        assert file_type(kind | 0x777) is kind


def test_file_type_unknown():
    assert file_type(0x777) is None


def test_is_owner():
    assert is_owner(Session(SUPER_USER, SUPER_USER), 7)
    assert is_owner(Session(7, 7), 7)
    assert not is_owner(Session(8, 7), 7)


def test_group_is_owner_compares_effective_user():
    assert group_is_owner(Session(SUPER_USER, 3), 9)
    assert group_is_owner(Session(9, 3), 9)
    assert not group_is_owner(Session(3, 9), 9)


def test_super_user_always_has_access():
    node = _Node(uid=5, gid=5, mask=FileType.FILE)
    assert file_has_access(Session(SUPER_USER, SUPER_USER), node, R_BIT | W_BIT | X_BIT)


def test_owner_bits_apply_to_owner():
    node = _Node(uid=5, gid=6, mask=FileType.FILE | 0x400)
    session = Session(5, 6)
    assert file_has_access(session, node, R_BIT)
    assert not file_has_access(session, node, W_BIT)


def test_group_bits_apply_to_group():
    node = _Node(uid=5, gid=6, mask=FileType.FILE | 0x020)
    session = Session(7, 6)
    assert file_has_access(session, node, W_BIT)
    assert not file_has_access(session, node, R_BIT)


def test_other_bits_apply_to_others():
    node = _Node(uid=5, gid=6, mask=FileType.FILE | 0x001)
    session = Session(7, 8)
    assert file_has_access(session, node, X_BIT)
    assert not file_has_access(session, node, R_BIT | X_BIT)


def test_sudo_restores_identity():
    session = Session(4, 9)
    with session.sudo():
        assert (session.euid, session.egid) == (SUPER_USER, SUPER_USER)
    assert (session.euid, session.egid) == (4, 9)


def test_sudo_restores_identity_after_error():
    session = Session(4, 9)
    with pytest.raises(RuntimeError):
        with session.sudo():
            raise RuntimeError("boom")
    assert (session.euid, session.egid) == (4, 9)