"""Table-driven CRC implementations used by payload checksums."""

from enum import StrEnum


class CrcKind(StrEnum):
    """Supported 32-bit CRC variants."""

    CRC32 = "crc32"
    CRC32C = "crc32c"


def _make_table(poly: int) -> tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = (crc >> 1) ^ poly if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


# Reflected polynomials
_CRC32_TABLE = _make_table(0xEDB88320)
_CRC32C_TABLE = _make_table(0x82F63B78)


def _crc(table: tuple[int, ...], data: bytes, value: int) -> int:
    crc = value ^ 0xFFFFFFFF
    for byte in data:
        crc = table[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


def crc32(data: bytes, value: int = 0) -> int:
    """Compute CRC-32 (IEEE 802.3), continuing from a previous value."""
    return _crc(_CRC32_TABLE, data, value)


def crc32c(data: bytes, value: int = 0) -> int:
    """Compute CRC-32C (Castagnoli), continuing from a previous value."""
    return _crc(_CRC32C_TABLE, data, value)


crc_funcs = {
    CrcKind.CRC32: crc32,
    CrcKind.CRC32C: crc32c,
}
