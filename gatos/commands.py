"""An interactive shell over the file system and the user and group tables."""

import sys

from gatos.disk import AtaDisks
from gatos.disk_manager import MAX_NAME_LENGTH, DiskManager, Strategy, open_storage
from gatos.fs import (
    EntryExistsError,
    EntryNotFoundError,
    FileSystem,
    FsError,
    IsDirectoryError,
    PermissionDeniedError,
)
from gatos.groups import NO_GROUP, GroupError, default_groups
from gatos.permission import (
    R_BIT,
    W_BIT,
    FileType,
    Session,
    file_has_access,
    is_owner,
    mask_string,
)
from gatos.users import NO_USER, UserError, default_users

DISK_SECTORS = 2048
_CAT_CHUNK = 512
_MAX_LINK_DEPTH = 8

_ENDINGS = {FileType.DIRECTORY: "/", FileType.SYMLINK: "@", FileType.PIPE: "|"}

_COMMANDS = (
    ("echo", "cmd_echo", "echo [ARGS...]\nPrints its arguments."),
    ("help", "cmd_help", "help [COMMAND]\nLists the commands or shows the help of one."),
    ("cd", "cmd_cd", "cd DIRECTORY\nChanges the current directory."),
    ("ls", "cmd_ls", "ls [-a]\nLists the current directory; -a shows hidden entries."),
    ("mkdir", "cmd_mkdir", "mkdir NAME\nCreates a directory."),
    ("rm", "cmd_rm", "rm NAME\nRemoves a file or directory."),
    ("pwd", "cmd_pwd", "pwd\nShows the current directory."),
    ("touch", "cmd_touch", "touch NAME [TEXT]\nCreates a file, optionally with contents."),
    ("ln", "cmd_ln", "ln TARGET LINK\nCreates a symbolic link."),
    ("cat", "cmd_cat", "cat NAME\nPrints the contents of a file."),
    ("chmod", "cmd_chmod", "chmod MODE FILE\nChanges the permission bits of a file."),
    ("chown", "cmd_chown", "chown USER FILE\nChanges the owner of a file."),
    ("chgrp", "cmd_chgrp", "chgrp GROUP FILE\nChanges the group of a file."),
    ("cp", "cmd_cp", "cp SOURCE DEST\nCopies a file."),
    ("mv", "cmd_mv", "mv SOURCE DEST\nMoves a file."),
    ("useradd", "cmd_useradd", "useradd USERNAME PASSWORD\nCreates a user."),
    ("userdel", "cmd_userdel", "userdel USERNAME\nDeletes a user."),
    ("userlist", "cmd_userlist", "userlist\nLists the users."),
    ("usersetgid", "cmd_usersetgid", "usersetgid USERNAME GID\nSets the group of a user."),
    ("groupadd", "cmd_groupadd", "groupadd GROUP PASSWORD\nCreates a group."),
    ("groupdel", "cmd_groupdel", "groupdel GROUP\nDeletes a group."),
    ("grouplist", "cmd_grouplist", "grouplist\nLists the groups."),
    ("sudo", "cmd_sudo", "sudo COMMAND [ARGS...]\nRuns a command as the super user."),
)


class Shell:
    """Parses command lines and runs them against the file system."""

    def __init__(self, fs, users, groups, session, out=None):
        self.fs = fs
        self.users = users
        self.groups = groups
        self.session = session
        self.out = out if out is not None else sys.stdout
        root = fs.root()
        self.cwd = root.inode
        self.path = root.name
        self._handlers = {name: getattr(self, method) for name, method, _ in _COMMANDS}
        self._help = {name: text for name, _, text in _COMMANDS}

    # -- dispatch -------------------------------------------------------

    def run(self, line):
        """Run one command line and return its status."""
        words = line.split()
        if not words:
            return 0
        name, args = words[0], words[1:]
        handler = self._handlers.get(name)
        if handler is None:
            self._print(f"{name}: command not found\n")
            return -1
        return handler(args)

    def prompt(self):
        return f"{self.users.name_of(self.session.euid)}:{self.path}$ "

    # -- general --------------------------------------------------------

    def cmd_echo(self, args):
        self._print("".join(f"{arg} " for arg in args))
        return 0

    def cmd_help(self, args):
        if len(args) == 1:
            text = self._help.get(args[0])
            if text is None:
                self._print("\nCommand not found\n")
            else:
                self._print(f"\n{text}\n")
        elif not args:
            self._print("\nAvailable commands:\n\n")
            for index, name in enumerate(self._help):
                if index % 2 == 0:
                    self._print(f"\t{name:>12}|")
                else:
                    self._print(f"\t{name}\n")
            self._print(
                '\n\nType help "cmdName" to see the help menu for that command.\n'
            )
        return 0

    # -- navigation -----------------------------------------------------

    def cmd_cd(self, args):
        if len(args) != 1:
            return 0
        name = args[0]
        for _ in range(_MAX_LINK_DEPTH):
            node = self.fs.finddir(self._current(), name)
            if node is None:
                self._print(f'cd: The directory "{name}" does not exist\n')
                return 0
            if node.file_type is FileType.SYMLINK:
                name = self._link_target(node)
                continue
            if not file_has_access(self.session, node, R_BIT):
                self._print(f"cd: You don't have read access to {name}\n")
                return -1
            if node.is_directory:
                self.cwd = node.inode
                self.path = node.name
            else:
                self._print(f"cd: {name} is not a directory\n")
            return 0
        self._print(f"cd: {args[0]}: Too many levels of symbolic links\n")
        return -1

    def cmd_ls(self, args):
        show_hidden = len(args) == 1 and args[0] == "-a"
        index = 0 if show_hidden else 2
        current = self._current()
        while (node := self.fs.readdir(current, index)) is not None:
            name = node.name
            if not name.startswith(".") or show_hidden:
                if show_hidden and index == 0:
                    name = "."
                elif show_hidden and index == 1:
                    name = ".."
                self._print(
                    f"{mask_string(node.mask)}"
                    f"\t{self.users.name_of(node.uid):>5}"
                    f"\t{self.groups.name_of(node.gid):>5}"
                    f"\t{name}{_ENDINGS.get(node.file_type, '')}\n"
                )
            index += 1
        return 0

    def cmd_pwd(self, args):
        self._print(f"{self.path}\n")
        return 0

    # -- files ----------------------------------------------------------

    def cmd_mkdir(self, args):
        if not args:
            self._print("mkdir: missing operand\n")
            return 0
        error = self._create(args[0], FileType.DIRECTORY, {
            PermissionDeniedError: "No write permission.",
            EntryExistsError: "Directory exists",
        })
        if error is not None:
            self._print(f"mkdir: cannot create dir {args[0]}: {error}\n")
        return 0

    def cmd_touch(self, args):
        if not args:
            self._print("touch: missing operand\n")
            return 0
        error = self._create(args[0], FileType.FILE, {
            PermissionDeniedError: "No write permission",
            EntryExistsError: "File exists",
        })
        if error is not None:
            self._print(f"touch: cannot create file {args[0]}: {error}\n")
            return -1
        if len(args) == 2:
            node = self.fs.finddir(self._current(), args[0])
            self.fs.write(node, 0, args[1].encode("utf-8") + b"\0")
        return 0

    def cmd_rm(self, args):
        if len(args) != 1:
            return 0
        current = self._current()
        node = self.fs.finddir(current, args[0])
        error = None
        if node is None:
            error = "No such file or directory"
        elif not file_has_access(self.session, node, W_BIT):
            error = "Don't have write access"
        else:
            try:
                self.fs.remove(current, node.inode)
            except EntryNotFoundError:
                error = "No such file or directory"
        if error is not None:
            self._print(f'rm: cannot remove "{args[0]}": {error}\n')
            return -1
        return 0

    def cmd_ln(self, args):
        if len(args) != 2:
            self._print("ln: missing file operand\n")
            return 0
        current = self._current()
        target = self.fs.finddir(current, args[0])
        if target is None:
            self._print(f'ln: accessing "{args[0]}": No such file or directory\n')
            return -1
        try:
            inode = self.fs.create(current, args[1], FileType.SYMLINK)
        except EntryExistsError:
            self._print(f'ln: accessing "{args[1]}": File exists\n')
            return -1
        except PermissionDeniedError:
            self._print(f'ln: accessing "{args[1]}": No write permission\n')
            return -1
        except (FsError, ValueError) as error:
            self._print(f'ln: accessing "{args[1]}": {error}\n')
            return -1
        link = self.fs.node(inode)
        self.fs.write(link, 0, target.name.encode("utf-8").ljust(MAX_NAME_LENGTH, b"\0"))
        return 0

    def cmd_cat(self, args):
        if len(args) != 1:
            return 0
        name = args[0]
        for _ in range(_MAX_LINK_DEPTH):
            node = self.fs.finddir(self._current(), name)
            if node is None:
                self._print(f"cat: {name}: No such file or directory\n")
                return 0
            if node.is_directory:
                self._print(f"cat: {name}: Is a directory\n")
                return 0
            if not file_has_access(self.session, node, R_BIT):
                self._print(f"cat: You don't have read access to {name}")
                return -1
            if node.file_type is FileType.SYMLINK:
                name = self._link_target(node)
                continue
            offset = 0
            while chunk := self.fs.read(node, offset, _CAT_CHUNK):
                text = chunk.split(b"\0", 1)[0].decode("utf-8", errors="replace")
                self._print(f"{text}\n")
                offset += len(chunk)
            return 0
        self._print(f"cat: {args[0]}: Too many levels of symbolic links\n")
        return -1

    def cmd_chmod(self, args):
        if len(args) != 2:
            self._print("Usage: chmod OCTALMODE FILE")
            return 0
        node = self._owned_file("chmod", args[1])
        if isinstance(node, int):
            return node
        try:
            mode = int(args[0], 16)
        except ValueError:
            self._print(f"chmod: invalid mode {args[0]}\n")
            return -1
        self.fs.set_mode(node.inode, mode)
        return 0

    def cmd_chown(self, args):
        if len(args) != 2:
            self._print("Usage: chown USER FILE\n")
            return 0
        node = self._owned_file("chown", args[1])
        if isinstance(node, int):
            return node
        uid = self.users.find(args[0])
        if uid == NO_USER:
            self._print(f"chown: User {args[0]} does not exist.\n")
            return -2
        self.fs.set_uid(node.inode, uid)
        return 0

    def cmd_chgrp(self, args):
        if len(args) != 2:
            self._print("Usage: chgrp GROUP FILE\n")
            return 0
        node = self._owned_file("chgrp", args[1])
        if isinstance(node, int):
            return node
        gid = self.groups.find(args[0])
        if gid == NO_GROUP:
            self._print(f"chgrp: Group {args[0]} does not exist.\n")
            return -2
        self.fs.set_gid(node.inode, gid)
        return 0

    def cmd_cp(self, args):
        if len(args) != 2:
            self._print("usage: cp SOURCE DEST\n")
            return -1
        source, destination = args
        current = self._current()
        node = self.fs.finddir(current, source)
        if node is None:
            self._print(f"cp: Source file: {source} does not exists\n")
            return -1
        try:
            self.fs.clone(current, node, destination)
        except EntryExistsError:
            error = "file already exists"
        except IsDirectoryError:
            error = "File is a directory! (use -r)"
        except PermissionDeniedError:
            error = "No write permission"
        except (FsError, ValueError) as exc:
            error = str(exc)
        else:
            return 0
        self._print(f"cp: could not copy {source}: {error}\n")
        return -1

    def cmd_mv(self, args):
        if len(args) == 2:
            if self.cmd_cp(args) == 0:
                self.cmd_rm(args[:1])
        else:
            self.cmd_cp(args)
        return 0

    # -- users and groups -----------------------------------------------

    def cmd_useradd(self, args):
        if len(args) != 2:
            self._print("usage: useradd USERNAME PASSWORD\n")
            return -1
        return self._attempt("useradd", self.users.add, *args)

    def cmd_userdel(self, args):
        if len(args) != 1:
            self._print("usage: userdel USERNAME\n")
            return -1
        return self._attempt("userdel", self.users.delete, args[0])

    def cmd_userlist(self, args):
        if args:
            self._print("usage: userlist\n")
            return -1
        self._print("\tuid\tgid\tusername\n")
        self._print("\t---\t---\t--------\n")
        for uid, gid, name in self.users.listing():
            self._print(f"\t{uid}\t{gid}\t{name}\n")
        return 0

    def cmd_usersetgid(self, args):
        if len(args) != 2:
            self._print("usage: usersetgid USERNAME GID\n")
            return -1
        try:
            gid = int(args[1])
        except ValueError:
            self._print(f"usersetgid: invalid gid {args[1]}\n")
            return -1
        return self._attempt("usersetgid", self.users.set_gid_by_name, args[0], gid)

    def cmd_groupadd(self, args):
        if len(args) != 2:
            self._print("usage: groupadd GROUP PASSWORD\n")
            return -1
        return self._attempt("groupadd", self.groups.add, *args)

    def cmd_groupdel(self, args):
        if len(args) != 1:
            self._print("usage: groupdel GROUP\n")
            return -1
        return self._attempt("groupdel", self.groups.delete, args[0])

    def cmd_grouplist(self, args):
        if args:
            self._print("usage: grouplist\n")
            return -1
        self._print("\tgid\tgroupname\n")
        self._print("\t---\t---------\n")
        for gid, name in self.groups.listing():
            self._print(f"\t{gid}\t{name}\n")
        return 0

    def cmd_sudo(self, args):
        with self.session.sudo():
            if args:
                self.run(" ".join(args))
        return 0

    # -- internals ------------------------------------------------------

    def _print(self, text):
        self.out.write(text)

    def _current(self):
        return self.fs.node(self.cwd)

    def _link_target(self, node):
        raw = self.fs.read(node, 0, MAX_NAME_LENGTH)
        return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")

    def _create(self, name, kind, messages):
        """Create ``name`` in the current directory; return an error text or None."""
        try:
            self.fs.create(self._current(), name, kind)
        except (FsError, ValueError) as error:
            return messages.get(type(error), "Unknown error")
        return None

    def _owned_file(self, command, name):
        """Return the node called ``name`` if the session owns it, else a status."""
        node = self.fs.finddir(self._current(), name)
        if node is None:
            self._print(f"{command}: No such file or directory {name}.\n")
            return -1
        if not is_owner(self.session, node.uid):
            self._print(f"{command}: You are not the owner of {name}.\n")
            return -2
        return node

    def _attempt(self, command, action, *args):
        try:
            action(*args)
        except (UserError, GroupError, PermissionError) as error:
            self._print(f"{command}: {error}\n")
            return -1
        return 0


def _boot(out):
    session = Session()
    disks = AtaDisks(DISK_SECTORS)
    manager = DiskManager(open_storage(disks, Strategy.LRU_CACHE))
    fs = FileSystem(manager, session)
    groups = default_groups(session)
    users = default_users(fs, groups, session)
    return Shell(fs, users, groups, session, out)


def main(argv=None):
    """Run one command from ``argv``, or read commands from standard input."""
    if argv is None:
        argv = sys.argv[1:]
    shell = _boot(sys.stdout)
    if argv:
        return shell.run(" ".join(argv))
    status = 0
    while True:
        shell.out.write(shell.prompt())
        shell.out.flush()
        line = sys.stdin.readline()
        if not line or line.strip() == "exit":
            break
        status = shell.run(line)
    shell.out.write("\n")
    return status