import pytest

from gatos.groups import (
    GROUP_MAX,
    NO_GROUP,
    GroupError,
    GroupTable,
    default_groups,
)
from gatos.permission import Session


@pytest.fixture
def table():
    return GroupTable(Session())


def test_default_groups_contents():
    groups = default_groups(Session())
    assert groups.find("root") == 0
    assert groups.entry_string(0) == "0:root:password"
    assert groups.find("dev") == NO_GROUP
    assert not groups.is_set(12)
    assert groups.find("guest") != NO_GROUP
    assert groups.get(groups.find("guest")).password == ""


def test_parse_round_trip(table):
    gid = table.parse("5:ops:password\n")
    assert gid == 5
    assert table.entry_string(5) == "5:ops:password"
    assert table.name_of(5) == "ops"


def test_parse_duplicate_gid_keeps_existing(table):
    table.parse("5:ops:password")
    with pytest.raises(GroupError):
        table.parse("5:other:password")
    assert table.name_of(5) == "ops"


def test_parse_duplicate_name_removes_new_group(table):
    table.parse("5:ops:password")
    with pytest.raises(GroupError):
        table.parse("6:ops:password")
    assert not table.is_set(6)


def test_parse_rejects_bad_gid(table):
    with pytest.raises(GroupError):
        table.parse("x:ops:password")
    with pytest.raises(GroupError):
        table.parse(f"{GROUP_MAX}:ops:password")


def test_set_name_validation(table):
    gid = table.add("ops", "password")
    with pytest.raises(GroupError):
        table.set_name(gid, "")
    with pytest.raises(GroupError):
        table.set_name(gid, "a:b")
    with pytest.raises(GroupError):
        table.set_name(gid + 1, "free")
    assert table.name_of(gid) == "ops"


def test_set_password_rejects_colon(table):
    gid = table.add("ops", "password")
    with pytest.raises(GroupError):
        table.set_password(gid, "a:b")
    assert table.get(gid).password == "password"


def test_add_uses_lowest_free_gid(table):
    table.parse("0:root:password")
    table.parse("2:two:password")
    assert table.add("one", "password") == 1
    assert table.add("three", "password") == 3


def test_add_failure_leaves_no_group(table):
    with pytest.raises(GroupError):
        table.add("bad:name", "password")
    assert table.listing() == []


def test_add_when_full(table):
    for index in range(GROUP_MAX):
        table.add(f"g{index}", "password")
    with pytest.raises(GroupError):
        table.add("extra", "password")


def test_delete_missing_group(table):
    with pytest.raises(GroupError):
        table.delete("nobody")


def test_delete_own_group_refused():
    session = Session(euid=0, egid=3)
    groups = GroupTable(session)
    groups.parse("3:ops:password")
    with pytest.raises(GroupError):
        groups.delete("ops")
    assert groups.is_set(3)


def test_delete_without_permission():
    session = Session(euid=5, egid=5)
    groups = GroupTable(session)
    groups.parse("7:ops:password")
    with pytest.raises(PermissionError):
        groups.delete("ops")
    assert groups.is_set(7)


def test_delete_as_owner():
    session = Session(euid=5, egid=3)
    groups = GroupTable(session)
    groups.parse("5:ops:password")
    groups.delete("ops")
    assert groups.find("ops") == NO_GROUP


def test_login(table):
    gid = table.add("ops", "password")
    assert table.login(gid, "password").name == "ops"
    with pytest.raises(GroupError):
        table.login(gid, "secret")
    with pytest.raises(GroupError):
        table.login(gid + 1, "password")


def test_name_of_unknown_and_range(table):
    assert table.name_of(4) == "unknown"
    assert not table.is_set(-1)
    assert table.get(GROUP_MAX) is None
    assert table.entry_string(4) == ""


def test_listing_is_ordered(table):
    table.parse("9:nine:password")
    table.parse("2:two:password")
    assert table.listing() == [(2, "two"), (9, "nine")]