"""Inode and block allocation on top of sector-addressed storage.

Disk layout::

    sector 0        file-system header followed by the inode bitmap
    sector 1..9     inode records
    sector 10       block bitmap
    sector 11...    file blocks, each a page record followed by content

The first block of a file also holds its file header right after the
page record.  Blocks of one file are chained through their page records.
"""

import enum
import struct
from dataclasses import dataclass

from gatos.disk import ATA0, SECTOR_SIZE
from gatos.disk_cache import DiskCache

MAGIC_NUMBER = 0x4761744F
MAX_NAME_LENGTH = 32
DISK_BLOCK_SIZE = 128
CACHE_SIZE = 16

INODES_SECTOR = 1
FILES_BITMAP_SECTOR = 10
FILE_CONTENTS_SECTOR = 11

_FS_HEADER = struct.Struct("<I")
_PAGE = struct.Struct("<7I")
_INODE = struct.Struct("<9I")
_HEADER = struct.Struct(f"<I{MAX_NAME_LENGTH}s5i")

PAGE_SIZE = _PAGE.size
HEADER_SIZE = _HEADER.size
INODE_BITMAP_SIZE = SECTOR_SIZE - _FS_HEADER.size
MAX_INODES = min(
    (FILES_BITMAP_SECTOR - INODES_SECTOR) * SECTOR_SIZE // _INODE.size,
    INODE_BITMAP_SIZE * 8,
)
MAX_BLOCKS = SECTOR_SIZE * 8


class Strategy(enum.IntEnum):
    DIRECT_ACCESS = 0
    LRU_CACHE = 1


class DiskManagerError(Exception):
    """Base class for storage layout errors."""


class CorruptedFileError(DiskManagerError):
    """Raised when an inode, page or header lacks its magic number."""


class OutOfSpaceError(DiskManagerError):
    """Raised when no free inode or block is left."""


@dataclass
class FileHeader:
    """The attributes stored with a file."""

    name: str = ""
    uid: int = 0
    gid: int = 0
    flags: int = 0
    impl: int = 0
    mask: int = 0


@dataclass
class _DiskPage:
    magic: int = 0
    disk: int = ATA0
    next_sector: int = 0
    next_offset: int = 0
    total_length: int = 0
    used_bytes: int = 0
    has_next: bool = False

    def pack(self):
        return _PAGE.pack(
            self.magic, self.disk, self.next_sector, self.next_offset,
            self.total_length, self.used_bytes, int(self.has_next),
        )

    @classmethod
    def unpack(cls, raw):
        magic, disk, sector, offset, total, used, has_next = _PAGE.unpack(raw)
        return cls(magic, disk, sector, offset, total, used, bool(has_next))


@dataclass
class _InodeRecord:
    page: _DiskPage
    blocks: int = 0
    used_bytes: int = 0

    def pack(self):
        return self.page.pack() + struct.pack("<2I", self.blocks, self.used_bytes)

    @classmethod
    def unpack(cls, raw):
        page = _DiskPage.unpack(raw[:PAGE_SIZE])
        blocks, used = struct.unpack("<2I", raw[PAGE_SIZE:])
        return cls(page, blocks, used)


def _encode_name(name):
    raw = name.encode("utf-8")
    if b"\0" in raw or len(raw) >= MAX_NAME_LENGTH:
        raise ValueError(
            f"file name {name!r} must be shorter than {MAX_NAME_LENGTH} bytes "
            "and hold no NUL character"
        )
    return raw


def _pack_header(header, magic=MAGIC_NUMBER):
    return _HEADER.pack(
        magic, _encode_name(header.name),
        header.gid, header.uid, header.flags, header.impl, header.mask,
    )


def _unpack_header(raw):
    magic, name, gid, uid, flags, impl, mask = _HEADER.unpack(raw)
    decoded = name.split(b"\0", 1)[0].decode("utf-8", errors="replace")
    return magic, FileHeader(decoded, uid, gid, flags, impl, mask)


def open_storage(disks, strategy):
    """Return the storage to use for ``disks`` under ``strategy``."""
    if strategy == Strategy.LRU_CACHE:
        return DiskCache(disks, CACHE_SIZE)
    return disks


class DiskManager:
    """Allocates inodes and chained blocks and moves file contents."""

    def __init__(self, storage):
        self._storage = storage

    # -- file-system header -------------------------------------------

    def validate_header(self):
        """Return whether the storage carries a file-system header."""
        (magic,) = _FS_HEADER.unpack(self._storage.read(ATA0, _FS_HEADER.size, 0, 0))
        return magic == MAGIC_NUMBER

    def write_header(self):
        """Write the file-system header and mark every inode and block free."""
        self._storage.write(ATA0, _FS_HEADER.pack(MAGIC_NUMBER), 0, 0)
        self._storage.write(ATA0, bytes(INODE_BITMAP_SIZE), 0, _FS_HEADER.size)
        self._storage.write(ATA0, bytes(SECTOR_SIZE), FILES_BITMAP_SECTOR, 0)

    # -- inodes ---------------------------------------------------------

    def next_inode(self):
        """Reserve and return the lowest free inode number."""
        bitmap = bytearray(
            self._storage.read(ATA0, INODE_BITMAP_SIZE, 0, _FS_HEADER.size)
        )
        for number in range(MAX_INODES):
            byte, bit = divmod(number, 8)
            if not bitmap[byte] & (1 << bit):
                bitmap[byte] |= 1 << bit
                self._storage.write(ATA0, bytes(bitmap), 0, _FS_HEADER.size)
                return number
        raise OutOfSpaceError("no free inode left")

    def create_inode(self, number, header):
        """Give inode ``number`` one block and store ``header`` in it."""
        self._check_number(number)
        packed = _pack_header(header)
        pointer = self._reserve(1)
        self._set_record(number, _InodeRecord(pointer, 1, 0))
        self._storage.write(
            pointer.disk, packed, pointer.next_sector, pointer.next_offset + PAGE_SIZE
        )

    def delete(self, number):
        """Free the blocks and the inode number of a file."""
        record = self._valid_record(number)
        self._free(record.page)
        self._storage.write(
            record.page.disk, bytes(HEADER_SIZE),
            record.page.next_sector, record.page.next_offset + PAGE_SIZE,
        )
        self._set_record(number, _InodeRecord(_DiskPage()))
        bitmap = bytearray(
            self._storage.read(ATA0, INODE_BITMAP_SIZE, 0, _FS_HEADER.size)
        )
        byte, bit = divmod(number, 8)
        bitmap[byte] &= ~(1 << bit) & 0xFF
        self._storage.write(ATA0, bytes(bitmap), 0, _FS_HEADER.size)

    def read_inode(self, number):
        """Return the file header stored for inode ``number``."""
        return self._read_header(number)

    def write_inode(self, number, header):
        """Update the name, flags, impl and mask of a file; owners are kept."""
        current = self._read_header(number)
        current.name = header.name
        current.flags = header.flags
        current.impl = header.impl
        current.mask = header.mask
        self._write_header(number, current)

    # -- contents -------------------------------------------------------

    def write_contents(self, number, data, offset):
        """Store ``data`` at ``offset`` in the file, growing it as needed."""
        if offset < 0:
            raise ValueError(f"negative offset {offset}")
        data = bytes(data)
        record = self._valid_record(number)
        end = offset + len(data)
        available = self._available(record)
        if end > available:
            extra = -(-(end - available) // (DISK_BLOCK_SIZE - PAGE_SIZE))
            self._extend(record, extra)
            record.blocks += extra
        record.used_bytes = max(record.used_bytes, end)
        base = 0
        for sector, page_offset, page, start, capacity in self._regions(record):
            if base >= end:
                break
            low = max(offset, base)
            high = min(end, base + capacity)
            if low < high:
                self._storage.write(
                    page.disk, data[low - offset:high - offset],
                    sector, page_offset + start + (low - base),
                )
                used = start + (high - base)
                if used > page.used_bytes:
                    page.used_bytes = used
                    self._storage.write(page.disk, page.pack(), sector, page_offset)
            base += capacity
        if base < end:
            raise OutOfSpaceError(f"inode {number} lacks room for {end - base} bytes")
        self._set_record(number, record)

    def read_contents(self, number, length, offset):
        """Return up to ``length`` bytes of the file starting at ``offset``."""
        if offset < 0 or length < 0:
            raise ValueError("offset and length must not be negative")
        record = self._valid_record(number)
        end = min(offset + length, record.used_bytes)
        if end <= offset:
            return b""
        out = bytearray()
        base = 0
        for sector, page_offset, page, start, capacity in self._regions(record):
            if base >= end:
                break
            low = max(offset, base)
            high = min(end, base + capacity)
            if low < high:
                out += self._storage.read(
                    page.disk, high - low, sector, page_offset + start + (low - base)
                )
            base += capacity
        return bytes(out)

    def size(self, number):
        """Return the number of content bytes in use."""
        self._check_number(number)
        return self._get_record(number).used_bytes

    def available_memory(self, number):
        """Return how many content bytes the file's blocks can hold."""
        self._check_number(number)
        return self._available(self._get_record(number))

    # -- header fields --------------------------------------------------

    def get_file_name(self, number):
        return self._read_header(number).name

    def set_file_name(self, number, name):
        header = self._read_header(number)
        header.name = name
        self._write_header(number, header)

    def set_file_mode(self, number, mode):
        header = self._read_header(number)
        header.mask = mode
        self._write_header(number, header)

    def set_file_uid(self, number, uid):
        header = self._read_header(number)
        header.uid = uid
        self._write_header(number, header)

    def set_file_gid(self, number, gid):
        header = self._read_header(number)
        header.gid = gid
        self._write_header(number, header)

    # -- internals ------------------------------------------------------

    @staticmethod
    def _check_number(number):
        if not 0 <= number < MAX_INODES:
            raise IndexError(f"inode {number} out of range 0..{MAX_INODES - 1}")

    def _get_record(self, number):
        raw = self._storage.read(
            ATA0, _INODE.size, INODES_SECTOR, number * _INODE.size
        )
        return _InodeRecord.unpack(raw)

    def _set_record(self, number, record):
        self._storage.write(ATA0, record.pack(), INODES_SECTOR, number * _INODE.size)

    def _valid_record(self, number):
        self._check_number(number)
        record = self._get_record(number)
        if record.page.magic != MAGIC_NUMBER:
            raise CorruptedFileError(f"inode {number} is corrupted or unused")
        return record

    def _read_header(self, number):
        record = self._valid_record(number)
        raw = self._storage.read(
            record.page.disk, HEADER_SIZE,
            record.page.next_sector, record.page.next_offset + PAGE_SIZE,
        )
        magic, header = _unpack_header(raw)
        if magic != MAGIC_NUMBER:
            raise CorruptedFileError(f"file header of inode {number} is corrupted")
        return header

    def _write_header(self, number, header):
        record = self._valid_record(number)
        self._storage.write(
            record.page.disk, _pack_header(header),
            record.page.next_sector, record.page.next_offset + PAGE_SIZE,
        )

    @staticmethod
    def _available(record):
        if record.blocks <= 0:
            return 0
        return (DISK_BLOCK_SIZE - PAGE_SIZE - HEADER_SIZE) + (record.blocks - 1) * (
            DISK_BLOCK_SIZE - PAGE_SIZE
        )

    def _walk(self, pointer):
        """Yield (sector, offset, page) for every page in a chain."""
        disk, sector, offset = pointer.disk, pointer.next_sector, pointer.next_offset
        for _ in range(MAX_BLOCKS):
            page = _DiskPage.unpack(self._storage.read(disk, PAGE_SIZE, sector, offset))
            if page.magic != MAGIC_NUMBER:
                raise CorruptedFileError(f"corrupted file page at [{sector}, {offset}]")
            yield sector, offset, page
            if not page.has_next:
                return
            disk, sector, offset = page.disk, page.next_sector, page.next_offset
        raise CorruptedFileError("file page chain does not end")

    def _regions(self, record):
        for index, (sector, offset, page) in enumerate(self._walk(record.page)):
            start = PAGE_SIZE + (HEADER_SIZE if index == 0 else 0)
            yield sector, offset, page, start, DISK_BLOCK_SIZE - start

    def _reserve(self, count):
        """Claim ``count`` free blocks, chain them and return a pointer to the first."""
        if count <= 0:
            raise ValueError(f"block count must be positive, got {count}")
        bitmap = bytearray(self._storage.read(ATA0, SECTOR_SIZE, FILES_BITMAP_SECTOR, 0))
        chosen = []
        for index in range(MAX_BLOCKS):
            if len(chosen) == count:
                break
            byte, bit = divmod(index, 8)
            if not bitmap[byte] & (1 << bit):
                chosen.append(index)
        if len(chosen) < count:
            raise OutOfSpaceError(f"cannot reserve {count} blocks")
        for index in chosen:
            byte, bit = divmod(index, 8)
            bitmap[byte] |= 1 << bit
        self._storage.write(ATA0, bytes(bitmap), FILES_BITMAP_SECTOR, 0)

        addresses = [(FILE_CONTENTS_SECTOR, index * DISK_BLOCK_SIZE) for index in chosen]
        for position, (sector, offset) in enumerate(addresses):
            has_next = position + 1 < len(addresses)
            next_sector, next_offset = addresses[position + 1] if has_next else (0, 0)
            page = _DiskPage(
                MAGIC_NUMBER, ATA0, next_sector, next_offset, DISK_BLOCK_SIZE, 0, has_next
            )
            self._storage.write(
                ATA0, page.pack() + bytes(DISK_BLOCK_SIZE - PAGE_SIZE), sector, offset
            )
        first_sector, first_offset = addresses[0]
        return _DiskPage(
            MAGIC_NUMBER, ATA0, first_sector, first_offset,
            count * DISK_BLOCK_SIZE, 0, count > 1,
        )

    def _extend(self, record, extra):
        *_, (last_sector, last_offset, last_page) = self._walk(record.page)
        continuation = self._reserve(extra)
        last_page.has_next = True
        last_page.next_sector = continuation.next_sector
        last_page.next_offset = continuation.next_offset
        self._storage.write(last_page.disk, last_page.pack(), last_sector, last_offset)
        record.page.total_length += extra * DISK_BLOCK_SIZE
        record.page.has_next = True

    def _free(self, pointer):
        bitmap = bytearray(self._storage.read(ATA0, SECTOR_SIZE, FILES_BITMAP_SECTOR, 0))
        for _sector, offset, _page in self._walk(pointer):
            byte, bit = divmod(offset // DISK_BLOCK_SIZE, 8)
            bitmap[byte] &= ~(1 << bit) & 0xFF
        self._storage.write(ATA0, bytes(bitmap), FILES_BITMAP_SECTOR, 0)