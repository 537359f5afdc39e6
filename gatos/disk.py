"""In-memory ATA disks addressed by sector and byte offset."""

SECTOR_SIZE = 512
ATA0 = 0
ATA1 = 1


class InvalidDiskError(ValueError):
    """Raised when a disk identifier names no existing disk."""


def normalize(sector, offset):
    """Fold an offset of a sector or more into the sector number."""
    if offset >= SECTOR_SIZE:
        sector += offset // SECTOR_SIZE
        offset %= SECTOR_SIZE
    return sector, offset


class AtaDisks:
    """The two ATA disks, each a fixed number of sectors held in memory."""

    def __init__(self, sectors):
        if sectors <= 0:
            raise ValueError(f"a disk needs at least one sector, got {sectors}")
        self.sectors = sectors
        self._disks = {
            ATA0: bytearray(sectors * SECTOR_SIZE),
            ATA1: bytearray(sectors * SECTOR_SIZE),
        }

    def _span(self, disk, size, sector, offset):
        storage = self._disks.get(disk)
        if storage is None:
            raise InvalidDiskError(
                f"no such disk {disk} (sector {sector}, offset {offset})"
            )
        if size < 0:
            raise ValueError(f"negative transfer size {size}")
        if sector < 0 or offset < 0:
            raise IndexError(f"invalid position [{sector}, {offset}]")
        sector, offset = normalize(sector, offset)
        start = sector * SECTOR_SIZE + offset
        end = start + size
        if end > len(storage):
            raise IndexError(
                f"transfer of {size} bytes at [{sector}, {offset}] "
                f"runs past the end of disk {disk}"
            )
        return storage, start, end

    def read(self, disk, size, sector, offset):
        """Return ``size`` bytes starting at ``offset`` within ``sector``."""
        storage, start, end = self._span(disk, size, sector, offset)
        return bytes(storage[start:end])

    def write(self, disk, data, sector, offset):
        """Store ``data`` starting at ``offset`` within ``sector``."""
        data = bytes(data)
        storage, start, end = self._span(disk, len(data), sector, offset)
        storage[start:end] = data