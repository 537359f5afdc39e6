"""The user table, home directories and the accounts file."""

from dataclasses import dataclass

from gatos.fs import EntryExistsError, FsError
from gatos.permission import FileType, group_is_owner, is_owner

USER_MAX = 32
NO_USER = -1
HOME_MODE = 0x600
ACCOUNTS_FILE = "passwd"


class UserError(Exception):
    """Raised when a user request is invalid."""


@dataclass
class User:
    """One entry of the user table."""

    uid: int
    gid: int
    name: str = ""
    password: str = ""


def _check_format(field, value):
    if ":" in value:
        raise UserError(f"{field} cannot contain the ':' character")


class UserTable:
    """Users indexed by uid, each with a home directory under /home."""

    def __init__(self, fs, groups, session):
        self.fs = fs
        self.groups = groups
        self.session = session
        self._users = {}
        root = fs.root()
        self._home = fs.finddir(root, "home")
        self._etc = fs.finddir(root, "etc")
        self._accounts = (
            fs.finddir(self._etc, ACCOUNTS_FILE) if self._etc is not None else None
        )

    def is_set(self, uid):
        return 0 <= uid < USER_MAX and uid in self._users

    def get(self, uid):
        """Return the user ``uid``, or None if it does not exist."""
        return self._users.get(uid) if self.is_set(uid) else None

    def find(self, name):
        """Return the uid of the user called ``name``, or NO_USER."""
        for uid in sorted(self._users):
            if self._users[uid].name == name:
                return uid
        return NO_USER

    def parse(self, line):
        """Add a user from a ``uid:gid:name:password`` line; return its uid."""
        fields = line.rstrip("\n").split(":")
        try:
            uid = int(fields[0])
        except ValueError:
            raise UserError(f"invalid uid in {line!r}") from None
        self._add_slot(uid)
        try:
            if len(fields) < 3:
                raise UserError(f"missing fields in {line!r}")
            try:
                gid = int(fields[1])
            except ValueError:
                raise UserError(f"invalid gid in {line!r}") from None
            self.set_gid(uid, gid)
            self.set_name(uid, fields[2])
            self.set_password(uid, fields[3] if len(fields) > 3 else "")
            self._create_home(uid)
        except UserError:
            del self._users[uid]
            raise
        return uid

    def set_name(self, uid, name):
        user = self._require(uid)
        if not name:
            raise UserError("user name cannot be empty")
        _check_format("user name", name)
        if self.find(name) != NO_USER:
            raise UserError(f"user name {name} already exists")
        user.name = name

    def set_password(self, uid, password):
        user = self._require(uid)
        _check_format("password", password)
        user.password = password

    def set_gid(self, uid, gid):
        user = self._require(uid)
        if not self.groups.is_set(gid):
            raise UserError(f"invalid gid {gid}")
        user.gid = gid

    def set_gid_by_name(self, name, gid):
        uid = self.find(name)
        if uid == NO_USER:
            raise UserError(f"no user exists with {name} user name")
        self.set_gid(uid, gid)

    def add(self, name, password):
        """Create a user in the lowest free uid with the session's group."""
        uid = next((u for u in range(USER_MAX) if not self.is_set(u)), NO_USER)
        if uid == NO_USER:
            raise UserError("the user table is full")
        self._add_slot(uid)
        try:
            self.set_name(uid, name)
            self.set_password(uid, password)
            self.set_gid(uid, self.session.egid)
            self._create_home(uid)
        except UserError:
            del self._users[uid]
            raise
        return uid

    def delete(self, name):
        """Remove the user called ``name`` if the session may."""
        uid = self.find(name)
        if uid == NO_USER:
            raise UserError(f"no user exists with {name} user name")
        user = self._users[uid]
        if self.session.euid == uid:
            raise UserError("you can't delete your own user")
        if not (is_owner(self.session, uid) or group_is_owner(self.session, user.gid)):
            raise PermissionError("access denied")
        del self._users[uid]

    def entry_string(self, uid):
        """Return ``uid:gid:name:password``, or an empty string for no user."""
        user = self.get(uid)
        if user is None:
            return ""
        return f"{user.uid}:{user.gid}:{user.name}:{user.password}"

    def login(self, uid, password):
        """Return the user if ``password`` matches, raising UserError otherwise."""
        user = self.get(uid)
        if user is None:
            raise UserError(f"invalid user {uid}")
        if user.password != password:
            raise UserError("invalid password")
        return user

    def name_of(self, uid):
        user = self.get(uid)
        return user.name if user is not None else "unknown"

    def home(self, uid):
        """Return the home directory node of ``uid``, or None."""
        if self._home is None:
            return None
        return self.fs.finddir(self._home, self.name_of(uid))

    def listing(self):
        """Return ``(uid, gid, name)`` for every user, ordered by uid."""
        return [
            (uid, self._users[uid].gid, self._users[uid].name)
            for uid in sorted(self._users)
        ]

    def flush(self):
        """Write every user entry to the accounts file in /etc, creating it if needed."""
        if self._accounts is None:
            if self._etc is None:
                raise UserError("no /etc directory")
            inode = self.fs.create(self._etc, ACCOUNTS_FILE, FileType.FILE)
            self._accounts = self.fs.node(inode)
        text = "".join(self.entry_string(uid) + "\n" for uid in sorted(self._users))
        self.fs.write(self._accounts, 0, text.encode("utf-8"))

    def _add_slot(self, uid):
        if not 0 <= uid < USER_MAX:
            raise UserError(f"uid {uid} out of range 0..{USER_MAX - 1}")
        if uid in self._users:
            raise UserError(f"uid {uid} is already in use")
        self._users[uid] = User(uid, uid)

    def _require(self, uid):
        user = self.get(uid)
        if user is None:
            raise UserError(f"invalid uid {uid}")
        return user

    def _create_home(self, uid):
        user = self._require(uid)
        if self._home is None:
            raise UserError("no /home directory")
        with self.session.sudo():
            try:
                inode = self.fs.create(self._home, user.name, FileType.DIRECTORY)
            except EntryExistsError:
                return
            except (FsError, ValueError) as error:
                raise UserError(f"cannot create home of {user.name}: {error}") from error
            self.fs.set_uid(inode, user.uid)
            self.fs.set_gid(inode, user.gid)
            self.fs.set_mode(inode, HOME_MODE)


def default_users(fs, groups, session):
    """Return the user table the system starts with and write the accounts file."""
    table = UserTable(fs, groups, session)
    for line in (
        "0:0:root:password\n",
        "10:0:operator:password\n",
        "11:11:staff:password\n",
        "12:12:dev:password",
    ):
        try:
            table.parse(line)
        except UserError:
            pass
    table.add("a", "password")
    table.add("guest", "")
    table.flush()
    return table