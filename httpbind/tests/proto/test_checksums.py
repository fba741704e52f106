"""Tests for payload checksum calculation and validation."""

import base64
import logging

import pytest

from httpbind.proto.checksums import (
    ChecksumAlgorithm,
    ChecksumConfig,
    ChecksumMismatchError,
    RequestChecksumCalculation,
    ResponseChecksumValidation,
    apply_request_checksum,
    check_headers_for_precalculated_checksum,
    compute_header_value,
    is_part_level_checksum,
    request_checksum_enabled,
    validate_response_checksum,
)
from httpbind.proto.message import Body, Headers, HttpRequestBuilder, HttpResponse

HELLO = b"Hello world"


def describe_compute_header_value():
    def crc32(expect):
        expect(compute_header_value(ChecksumAlgorithm.CRC32, HELLO)) == "i9aeUg=="

    def crc32c(expect):
        expect(compute_header_value(ChecksumAlgorithm.CRC32C, HELLO)) == "crUfeA=="

    def sha1(expect):
        expect(compute_header_value(ChecksumAlgorithm.SHA1, HELLO)) == "e1AsOh9IyGCa4hLN+2Od7jlnP14="

    def sha256(expect):
        expected = "ZOyIygCyaOW6GjVnihtTFtIS9PNmskdyMlNKiuyjfzw="
        expect(compute_header_value(ChecksumAlgorithm.SHA256, HELLO)) == expected


def describe_checksum_algorithm():
    def parses_case_insensitively(expect):
        expect(ChecksumAlgorithm.parse("CRC32C")) == ChecksumAlgorithm.CRC32C
        expect(ChecksumAlgorithm.parse("sha256")) == ChecksumAlgorithm.SHA256

    def rejects_unknown_names():
        with pytest.raises(ValueError, match="unknown checksum algorithm"):
            ChecksumAlgorithm.parse("md5")

    def names_its_header(expect):
        expect(ChecksumAlgorithm.CRC32.header_name) == "x-amz-checksum-crc32"


def describe_is_part_level_checksum():
    def detects_part_counts(expect):
        expect(is_part_level_checksum("abcdef==-3")) == True
        expect(is_part_level_checksum("abcdef==-12")) == True

    def rejects_whole_object_checksums(expect):
        expect(is_part_level_checksum("i9aeUg==")) == False
        expect(is_part_level_checksum("abc-")) == False
        expect(is_part_level_checksum("abc--3")) == False
        expect(is_part_level_checksum("12")) == False


def describe_request_checksum_enabled():
    def defaults_to_when_supported(expect):
        expect(request_checksum_enabled(None, required=False, explicit=False)) == True

    def when_required_skips_optional_checksums(expect):
        config = ChecksumConfig(request_checksum_calculation=RequestChecksumCalculation.WHEN_REQUIRED)
        expect(request_checksum_enabled(config, required=False, explicit=False)) == False
        expect(request_checksum_enabled(config, required=True, explicit=False)) == True
        expect(request_checksum_enabled(config, required=False, explicit=True)) == True


def describe_apply_request_checksum():
    def adds_header_for_in_memory_body(expect):
        builder = HttpRequestBuilder("PUT", "/").body(Body(HELLO))
        apply_request_checksum(builder, "CRC32", required=False, explicit=False)
        expect(builder.headers.get("x-amz-checksum-crc32")) == "i9aeUg=="

    def keeps_precalculated_header(expect):
        builder = HttpRequestBuilder("PUT", "/").body(Body(HELLO))
        builder.header("x-amz-checksum-crc32", "AAAAAA==")
        apply_request_checksum(builder, "CRC32", required=False, explicit=False)
        expect(builder.headers.get_all("x-amz-checksum-crc32")) == ["AAAAAA=="]

    def wraps_streaming_body_in_aws_chunked(expect):
        stream = Body(iter([b"Hello ", b"world"]), content_length=11)
        builder = HttpRequestBuilder("PUT", "/").body(stream)
        apply_request_checksum(builder, "crc32", required=False, explicit=True)

        expect(builder.headers.get("content-encoding")) == "aws-chunked"
        expect(builder.headers.get("x-amz-trailer")) == "x-amz-checksum-crc32"
        expect(builder.headers.get("x-amz-decoded-content-length")) == "11"
        expect(builder.get_body().read()) == (
            b"6\r\nHello \r\n5\r\nworld\r\n0\r\nx-amz-checksum-crc32:i9aeUg==\r\n\r\n"
        )

    def does_nothing_when_disabled(expect):
        config = ChecksumConfig(request_checksum_calculation=RequestChecksumCalculation.WHEN_REQUIRED)
        builder = HttpRequestBuilder("PUT", "/").body(Body(HELLO))
        apply_request_checksum(builder, "CRC32", required=False, explicit=False, config=config)
        expect(len(builder.headers)) == 0


def _response(headers, body=HELLO):
    return HttpResponse(status=200, headers=Headers(headers), body=Body(body))


def describe_check_headers_for_precalculated_checksum():
    def prefers_cheapest_modeled_algorithm(expect):
        sha = base64.b64decode("ZOyIygCyaOW6GjVnihtTFtIS9PNmskdyMlNKiuyjfzw=")
        headers = Headers(
            {
                "x-amz-checksum-sha256": "ZOyIygCyaOW6GjVnihtTFtIS9PNmskdyMlNKiuyjfzw=",
                "x-amz-checksum-crc32": "i9aeUg==",
            }
        )
        found = check_headers_for_precalculated_checksum(headers, ("sha256", "crc32"))
        expect(found) == (ChecksumAlgorithm.CRC32, base64.b64decode("i9aeUg=="))

        found = check_headers_for_precalculated_checksum(headers, ("sha256",))
        expect(found) == (ChecksumAlgorithm.SHA256, sha)

    def ignores_unmodeled_algorithms(expect):
        headers = Headers({"x-amz-checksum-crc32c": "crUfeA=="})
        expect(check_headers_for_precalculated_checksum(headers, ("crc32",))) == None

    def skips_part_level_checksums(expect, caplog):
        headers = Headers({"x-amz-checksum-crc32": "i9aeUg==-2"})
        with caplog.at_level(logging.WARNING):
            expect(check_headers_for_precalculated_checksum(headers, ("crc32",))) == None
        expect("part-level checksum" in caplog.text) == True

    def skips_undecodable_checksums(expect, caplog):
        headers = Headers({"x-amz-checksum-crc32": "bm90LWEtY2hlY2tzdW0=!"})
        with caplog.at_level(logging.ERROR):
            expect(check_headers_for_precalculated_checksum(headers, ("crc32",))) == None
        expect("could not be base64 decoded" in caplog.text) == True


def describe_validate_response_checksum():
    def passes_matching_body(expect):
        response = _response({"x-amz-checksum-crc32": "i9aeUg=="})
        validate_response_checksum(response, ("crc32",), validation_enabled=True)
        expect(response.body.read()) == HELLO

    def raises_on_mismatch_once_drained(expect):
        response = _response({"x-amz-checksum-crc32": "bm90LWEtY2hlY2tzdW0="})
        validate_response_checksum(response, ("crc32",), validation_enabled=True)
        with pytest.raises(ChecksumMismatchError) as info:
            response.body.read()
        expect(info.value.expected) == b"not-a-checksum"
        expect(info.value.actual) == base64.b64decode("i9aeUg==")

    def skipped_when_required_only_and_not_enabled(expect):
        config = ChecksumConfig(response_checksum_validation=ResponseChecksumValidation.WHEN_REQUIRED)
        response = _response({"x-amz-checksum-crc32": "bm90LWEtY2hlY2tzdW0="})
        validate_response_checksum(response, ("crc32",), validation_enabled=False, config=config)
        expect(response.body.read()) == HELLO
