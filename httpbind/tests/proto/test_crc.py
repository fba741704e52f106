"""Tests for CRC implementations with standard test vectors."""

import zlib

from httpbind.proto.crc import CrcKind, crc32, crc32c, crc_funcs


def describe_crc32():
    def empty_data(expect):
        expect(crc32(b"")) == 0

    def standard_test_string(expect):
        # "123456789" is the standard CRC check input
        expect(crc32(b"123456789")) == 0xCBF43926

    def matches_zlib(expect):
        data = b"Hello world"
        expect(crc32(data)) == zlib.crc32(data)

    def continues_from_previous_value(expect):
        expect(crc32(b"world", crc32(b"Hello "))) == crc32(b"Hello world")


def describe_crc32c():
    def empty_data(expect):
        expect(crc32c(b"")) == 0

    def standard_test_string(expect):
        expect(crc32c(b"123456789")) == 0xE3069283

    def continues_from_previous_value(expect):
        expect(crc32c(b"world", crc32c(b"Hello "))) == crc32c(b"Hello world")


def describe_crc_funcs():
    def maps_every_kind(expect):
        expect(crc_funcs[CrcKind.CRC32]) == crc32
        expect(crc_funcs[CrcKind.CRC32C]) == crc32c
