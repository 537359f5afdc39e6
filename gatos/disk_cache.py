"""A write-back sector cache that evicts the least accessed sector."""

from dataclasses import dataclass, field

from gatos.disk import SECTOR_SIZE, normalize


@dataclass
class CachedSector:
    """One cache slot; an access count of -1 marks it as unused."""

    disk: int = 0
    sector: int = 0
    access_count: int = -1
    dirty: bool = False
    contents: bytearray = field(
        default_factory=lambda: bytearray(SECTOR_SIZE), repr=False
    )


class DiskCache:
    """Caches whole sectors of a backend offering ``read`` and ``write``."""

    def __init__(self, backend, size):
        if size <= 0:
            raise ValueError(f"cache size must be positive, got {size}")
        self._backend = backend
        self._entries = [CachedSector() for _ in range(size)]

    @property
    def size(self):
        return len(self._entries)

    def read(self, disk, size, sector, offset):
        """Return ``size`` bytes starting at ``offset`` within ``sector``."""
        if size < 0:
            raise ValueError(f"negative transfer size {size}")
        sector, offset = normalize(sector, offset)
        out = bytearray()
        while True:
            entry = self._load(disk, sector)
            chunk = min(size, SECTOR_SIZE - offset)
            out += entry.contents[offset:offset + chunk]
            entry.access_count += 1
            size -= chunk
            if size == 0:
                return bytes(out)
            sector += 1
            offset = 0

    def write(self, disk, data, sector, offset):
        """Store ``data`` in the cache, marking the touched sectors dirty."""
        data = bytes(data)
        sector, offset = normalize(sector, offset)
        position = 0
        while True:
            entry = self._load(disk, sector)
            entry.dirty = True
            entry.access_count += 1
            chunk = min(len(data) - position, SECTOR_SIZE - offset)
            entry.contents[offset:offset + chunk] = data[position:position + chunk]
            position += chunk
            if position == len(data):
                return
            sector += 1
            offset = 0

    def flush(self):
        """Write every dirty sector back to the backend."""
        for entry in self._entries:
            if entry.dirty:
                self._backend.write(entry.disk, bytes(entry.contents), entry.sector, 0)
                entry.dirty = False

    def entry(self, index):
        """Return a copy of the slot at ``index``."""
        if not 0 <= index < len(self._entries):
            raise IndexError(f"cache index {index} out of range")
        source = self._entries[index]
        return CachedSector(
            disk=source.disk,
            sector=source.sector,
            access_count=source.access_count,
            dirty=source.dirty,
            contents=bytearray(source.contents),
        )

    def _load(self, disk, sector):
        for entry in self._entries:
            if entry.access_count != -1 and entry.sector == sector and entry.disk == disk:
                return entry
        entry = self._entries[self._next_free_index()]
        entry.disk = disk
        entry.sector = sector
        entry.access_count = 1
        entry.dirty = False
        entry.contents[:] = self._backend.read(disk, SECTOR_SIZE, sector, 0)
        return entry

    def _next_free_index(self):
        victim = 0
        for index, entry in enumerate(self._entries):
            if entry.access_count == -1:
                return index
            if entry.access_count < self._entries[victim].access_count:
                victim = index
        evicted = self._entries[victim]
        if evicted.dirty:
            self._backend.write(evicted.disk, bytes(evicted.contents), evicted.sector, 0)
        return victim