import pytest

from gatos.disk import ATA0, ATA1, SECTOR_SIZE, AtaDisks, InvalidDiskError, normalize


def test_normalize_keeps_small_offsets():
    assert normalize(7, 10) == (7, 10)


@pytest.mark.parametrize("sector,offset", [(0, SECTOR_SIZE), (2, SECTOR_SIZE * 3 + 5), (1, 1000)])
def test_normalize_preserves_linear_position(sector, offset):
    new_sector, new_offset = normalize(sector, offset)
    assert 0 <= new_offset < SECTOR_SIZE
    assert new_sector * SECTOR_SIZE + new_offset == sector * SECTOR_SIZE + offset


def test_fresh_disk_reads_zeros():
    disks = AtaDisks(4)
    assert disks.read(ATA0, 16, 1, 3) == bytes(16)


def test_round_trip_across_sector_boundary():
    disks = AtaDisks(4)
    payload = bytes(range(256)) * 3
    disks.write(ATA0, payload, 0, SECTOR_SIZE - 10)
    assert disks.read(ATA0, len(payload), 0, SECTOR_SIZE - 10) == payload
    assert disks.read(ATA0, 10, 0, SECTOR_SIZE - 10) == payload[:10]


def test_write_preserves_neighbouring_bytes():
    disks = AtaDisks(2)
    disks.write(ATA0, b"abcdef", 0, 0)
    disks.write(ATA0, b"XY", 0, 2)
    assert disks.read(ATA0, 6, 0, 0) == b"abXYef"


def test_large_offset_addresses_later_sector():
    disks = AtaDisks(4)
    disks.write(ATA0, b"hello", 0, SECTOR_SIZE * 2 + 7)
    assert disks.read(ATA0, 5, 2, 7) == b"hello"


def test_disks_are_independent():
    disks = AtaDisks(2)
    disks.write(ATA0, b"zero", 0, 0)
    disks.write(ATA1, b"one!", 0, 0)
    assert disks.read(ATA0, 4, 0, 0) == b"zero"
    assert disks.read(ATA1, 4, 0, 0) == b"one!"


@pytest.mark.parametrize("disk", [2, -1, 99])
def test_invalid_disk_raises(disk):
    disks = AtaDisks(2)
    with pytest.raises(InvalidDiskError):
        disks.read(disk, 4, 0, 0)
    with pytest.raises(InvalidDiskError):
        disks.write(disk, b"data", 0, 0)


def test_transfer_past_end_raises():
    disks = AtaDisks(1)
    with pytest.raises(IndexError):
        disks.read(ATA0, 2, 0, SECTOR_SIZE - 1)
    with pytest.raises(IndexError):
        disks.write(ATA0, b"ab", 0, SECTOR_SIZE - 1)


def test_disk_needs_sectors():
    with pytest.raises(ValueError):
        AtaDisks(0)