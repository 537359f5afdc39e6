"""In-memory disks, an inode file system, users and groups, and a shell."""

__version__ = "0.1.0"

__all__ = [
    "commands",
    "disk",
    "disk_cache",
    "disk_manager",
    "fs",
    "groups",
    "keyboard",
    "permission",
    "terminal",
    "users",
]