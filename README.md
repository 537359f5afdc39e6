# gatos

`gatos` models the storage and account layers of a small operating system,
entirely in memory: two sector-addressed disks, a write-back sector cache,
an inode file system with Unix-style permission bits, user and group
tables, and a shell with the usual file and account commands. It also has
a keyboard scan-code translator and a text-mode screen buffer.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The shell

```
gatos
```

This formats a fresh in-memory disk, creates the default groups and users,
and reads commands from standard input until end of input or `exit`.
Given arguments, `gatos` runs them as one command line and exits with its
status, for example `gatos help ls`.

The shell runs as the super user (uid 0). It knows these commands:

| Command | What it does |
| --- | --- |
| `echo [ARGS...]` | prints its arguments |
| `help [COMMAND]` | lists the commands, or shows the help of one |
| `cd NAME` | enters a directory of the current directory, following symbolic links |
| `ls [-a]` | long listing of the current directory; `-a` also shows `.`, `..` and hidden names |
| `pwd` | prints the name of the current directory |
| `mkdir NAME` | creates a directory |
| `touch NAME [TEXT]` | creates a file, optionally holding `TEXT` |
| `cat NAME` | prints a file, following symbolic links |
| `ln TARGET LINK` | creates a symbolic link to an entry of the current directory |
| `rm NAME` | removes an entry |
| `cp SOURCE DEST` | copies a plain file |
| `mv SOURCE DEST` | copies, then removes the source |
| `chmod MODE FILE` | sets permission bits; `MODE` is read as hexadecimal digits, one per class, e.g. `755` |
| `chown USER FILE` / `chgrp GROUP FILE` | change the owner or group of a file |
| `useradd USERNAME PASSWORD`, `userdel USERNAME`, `userlist`, `usersetgid USERNAME GID` | manage users |
| `groupadd GROUP PASSWORD`, `groupdel GROUP`, `grouplist` | manage groups |
| `sudo COMMAND [ARGS...]` | runs a command as the super user |

Names are limited to 31 bytes. New files get mode `rwxr-xr-x`; each user
gets a home directory under `/home`, and the user table is written to
`/etc/passwd` when the system starts.

## Using the layers from Python

```python
import io

from gatos.commands import Shell
from gatos.disk import AtaDisks
from gatos.disk_manager import DiskManager, Strategy, open_storage
from gatos.fs import FileSystem
from gatos.groups import default_groups
from gatos.permission import FileType, Session, mask_string
from gatos.users import default_users

session = Session()
manager = DiskManager(open_storage(AtaDisks(2048), Strategy.LRU_CACHE))
fs = FileSystem(manager, session)          # formats the disk if it has no header

inode = fs.create(fs.root(), "notes", FileType.FILE)
node = fs.node(inode)
fs.write(node, 0, b"hello")
fs.read(node, 0, 100)                      # b"hello"
mask_string(node.mask)                     # "-rwxr-xr-x"

groups = default_groups(session)
users = default_users(fs, groups, session)
out = io.StringIO()
shell = Shell(fs, users, groups, session, out)
shell.run("cat notes")
```

The modules:

- `gatos.disk`: `AtaDisks(sectors)`, disks `ATA0` and `ATA1` of 512-byte
  sectors. `read` and `write` take a sector and a byte offset and may cross
  sector boundaries; `normalize` folds a large offset into the sector
  number. An unknown disk raises `InvalidDiskError`; a transfer past the
  end raises `IndexError`.
- `gatos.disk_cache`: `DiskCache(backend, size)`, a write-back cache of
  whole sectors. It evicts the least accessed sector, writing it back if
  dirty; `flush()` writes every dirty sector, and `entry(index)` returns a
  copy of a slot as a `CachedSector`.
- `gatos.disk_manager`: `DiskManager`, the on-disk layout: a header with a
  magic number and an inode bitmap, inode records, a block bitmap and
  chained 128-byte content blocks, the first of which holds the file's
  `FileHeader`. Files grow as they are written. Damaged or unused inodes
  raise `CorruptedFileError`; running out of inodes or blocks raises
  `OutOfSpaceError`. `open_storage(disks, strategy)` returns the disks
  themselves for `Strategy.DIRECT_ACCESS` or a 16-slot `DiskCache` for
  `Strategy.LRU_CACHE`.
- `gatos.permission`: `FileType`, `file_type`, `mask_string`, the checks
  `is_owner`, `group_is_owner` and `file_has_access`, and `Session`, whose
  `sudo()` context manager acts as the super user for the block.
- `gatos.fs`: `FileSystem` and `FsNode`, with `root`, `node`, `readdir`,
  `finddir`, `create`, `remove`, `read`, `write`, `size`, `set_mode`,
  `set_uid`, `set_gid` and `clone`. Failures raise `PermissionDeniedError`,
  `EntryExistsError`, `EntryNotFoundError`, `IsDirectoryError` or another
  `FsError`.
- `gatos.groups` and `gatos.users`: `GroupTable` and `UserTable` (at most
  32 entries each), filled from `gid:name:password` and
  `uid:gid:name:password` lines, with add, delete, find, login and
  listings. Errors raise `GroupError` or `UserError`, and `PermissionError`
  when the session may not delete an entry. `default_groups` and
  `default_users` build the tables the shell starts with.
- `gatos.commands`: `Shell`, whose `run(line)` runs one command line and
  returns its status, writing output to the stream it was given; `main` is
  the `gatos` command.
- `gatos.keyboard`: `Keyboard`, which tracks shift, control, alt, escape,
  delete and function keys (`KeyFlags`) and passes translated characters
  to an `on_key` callback.
- `gatos.terminal`: `TerminalBuffer`, rows of character and attribute byte
  pairs with scrolling, clearing, attribute ranges and newline, tab and
  backspace handling; `Color`, `formatted_color`, `foreground` and
  `background` build and split attribute bytes.

## What it does not do

- Nothing is kept between runs: every start of `gatos` formats a new
  in-memory disk.
- There are no processes. The shell has no commands to list, kill or
  reprioritise processes, or to show which files a process has open.
- There is no login or logout; the shell always runs as the super user.
- A pipe is only a file type: nothing gives it first-in first-out
  behaviour, and the shell cannot create one.
- The keyboard and screen classes are not wired to a terminal; the shell
  reads and writes plain text streams.