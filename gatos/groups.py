"""The group table: names, passwords and the rules for changing them."""

from dataclasses import dataclass

from gatos.permission import group_is_owner

GROUP_MAX = 32
NO_GROUP = -1


class GroupError(Exception):
    """Raised when a group request is invalid."""


@dataclass
class Group:
    """One entry of the group table."""

    gid: int
    name: str = ""
    password: str = ""


def _check_format(field, value):
    if ":" in value:
        raise GroupError(f"{field} cannot contain the ':' character")


class GroupTable:
    """Groups indexed by gid, at most GROUP_MAX of them."""

    def __init__(self, session):
        self.session = session
        self._groups = {}

    def is_set(self, gid):
        """Return whether ``gid`` names an existing group."""
        return 0 <= gid < GROUP_MAX and gid in self._groups

    def get(self, gid):
        """Return the group ``gid``, or None if it does not exist."""
        return self._groups.get(gid) if self.is_set(gid) else None

    def find(self, name):
        """Return the gid of the group called ``name``, or NO_GROUP."""
        for gid in sorted(self._groups):
            if self._groups[gid].name == name:
                return gid
        return NO_GROUP

    def parse(self, line):
        """Add a group from a ``gid:name:password`` line; return its gid."""
        fields = line.rstrip("\n").split(":")
        try:
            gid = int(fields[0])
        except ValueError:
            raise GroupError(f"invalid gid in {line!r}") from None
        self._add_slot(gid)
        try:
            if len(fields) < 2:
                raise GroupError(f"missing group name in {line!r}")
            self.set_name(gid, fields[1])
            self.set_password(gid, fields[2] if len(fields) > 2 else "")
        except GroupError:
            del self._groups[gid]
            raise
        return gid

    def set_name(self, gid, name):
        group = self._require(gid)
        if not name:
            raise GroupError("group name cannot be empty")
        _check_format("group name", name)
        if self.find(name) != NO_GROUP:
            raise GroupError(f"group name {name} already exists")
        group.name = name

    def set_password(self, gid, password):
        group = self._require(gid)
        _check_format("password", password)
        group.password = password

    def add(self, name, password):
        """Create a group in the lowest free gid; return that gid."""
        gid = next((g for g in range(GROUP_MAX) if not self.is_set(g)), NO_GROUP)
        if gid == NO_GROUP:
            raise GroupError("the group table is full")
        self._add_slot(gid)
        try:
            self.set_name(gid, name)
            self.set_password(gid, password)
        except GroupError:
            del self._groups[gid]
            raise
        return gid

    def delete(self, name):
        """Remove the group called ``name`` if the session may."""
        gid = self.find(name)
        if gid == NO_GROUP:
            raise GroupError(f"no group exists with {name} group name")
        if self.session.egid == gid:
            raise GroupError("you can't delete your own group")
        if not group_is_owner(self.session, gid):
            raise PermissionError("access denied")
        del self._groups[gid]

    def entry_string(self, gid):
        """Return ``gid:name:password``, or an empty string for no group."""
        group = self.get(gid)
        if group is None:
            return ""
        return f"{group.gid}:{group.name}:{group.password}"

    def login(self, gid, password):
        """Return the group if ``password`` matches, raising GroupError otherwise."""
        group = self.get(gid)
        if group is None:
            raise GroupError(f"invalid group {gid}")
        if group.password != password:
            raise GroupError("invalid password")
        return group

    def name_of(self, gid):
        group = self.get(gid)
        return group.name if group is not None else "unknown"

    def listing(self):
        """Return ``(gid, name)`` for every group, ordered by gid."""
        return [(gid, self._groups[gid].name) for gid in sorted(self._groups)]

    def _add_slot(self, gid):
        if not 0 <= gid < GROUP_MAX:
            raise GroupError(f"gid {gid} out of range 0..{GROUP_MAX - 1}")
        if gid in self._groups:
            raise GroupError(f"gid {gid} is already in use")
        self._groups[gid] = Group(gid)

    def _require(self, gid):
        group = self.get(gid)
        if group is None:
            raise GroupError(f"invalid gid {gid}")
        return group


def default_groups(session):
    """Return the group table the system starts with."""
    table = GroupTable(session)
    for line in (
        "0:root:password\n",
        "10:operator:password\n",
        "11:staff:password\n",
        "12:dev:password",
    ):
        table.parse(line)
    table.add("a", "password")
    table.add("guest", "")
    table.add("Tres", "password")
    table.delete("dev")
    return table