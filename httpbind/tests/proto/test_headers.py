"""Tests for header value parsing and formatting."""

from datetime import UTC, datetime

import pytest

from httpbind.proto.headers import (
    ParseError,
    checked_header_name,
    checked_header_value,
    expect_at_most_one,
    headers_for_prefix,
    many_dates,
    none_if_empty,
    one_or_none,
    quote_header_value,
    read_many_from_str,
    read_many_media,
    read_many_primitive,
    split_header_values,
    validate_header_name,
)
from httpbind.proto.message import BuildError
from httpbind.proto.timestamps import TimestampFormat


def describe_quote_header_value():
    def leaves_plain_tokens_alone(expect):
        expect(quote_header_value("abc")) == "abc"

    def quotes_commas_and_quotes(expect):
        expect(quote_header_value("a,b")) == '"a,b"'
        expect(quote_header_value('say "hi"')) == '"say \\"hi\\""'

    def quotes_empty_and_padded_values(expect):
        expect(quote_header_value("")) == '""'
        expect(quote_header_value(" x ")) == '" x "'


def describe_split_header_values():
    def splits_on_commas(expect):
        expect(split_header_values(["a, b,c"])) == ["a", "b", "c"]

    def keeps_quoted_commas(expect):
        expect(split_header_values(['"a,b", c'])) == ["a,b", "c"]

    def unescapes_quoted_values(expect):
        expect(split_header_values(['"say \\"hi\\""'])) == ['say "hi"']

    def joins_multiple_header_lines(expect):
        expect(split_header_values(["a", "b, c"])) == ["a", "b", "c"]

    def skips_blank_lines(expect):
        expect(split_header_values(["", "  "])) == []

    def rejects_unterminated_quotes():
        with pytest.raises(ParseError):
            split_header_values(['"abc'])

    def rejects_garbage_after_quotes():
        with pytest.raises(ParseError):
            split_header_values(['"abc" x'])


def describe_singular_values():
    def one_or_none_keeps_commas(expect):
        expect(one_or_none(["a, b"])) == "a, b"
        expect(one_or_none([])) == None

    def one_or_none_drops_optional_whitespace(expect):
        expect(one_or_none(["  a, b "])) == "a, b"

    def one_or_none_rejects_repeats():
        with pytest.raises(ParseError):
            one_or_none(["a", "b"])

    def expect_at_most_one_collapses(expect):
        expect(expect_at_most_one([1])) == 1
        expect(expect_at_most_one([])) == None

    def expect_at_most_one_rejects_many():
        with pytest.raises(ParseError, match="expected one item but found 2"):
            expect_at_most_one([1, 2])

    def none_if_empty_reads_empty_as_absent(expect):
        expect(none_if_empty([])) == None
        expect(none_if_empty([1])) == [1]


def describe_typed_reads():
    def reads_primitives(expect):
        expect(read_many_primitive(["1, 2", "3"], "int")) == [1, 2, 3]
        expect(read_many_primitive(["true,false"], "bool")) == [True, False]

    def rejects_bad_primitives():
        with pytest.raises(ParseError):
            read_many_primitive(["one"], "int")

    def converts_strings(expect):
        expect(read_many_from_str(["a,b"], str.upper)) == ["A", "B"]

    def reads_media(expect):
        expect(read_many_media(["aGVsbG8="])) == ["hello"]

    def reads_http_dates_with_embedded_commas(expect):
        values = ["Mon, 16 Dec 2019 23:48:18 GMT, Tue, 17 Dec 2019 23:48:18 GMT"]
        expect(many_dates(values, TimestampFormat.HTTP_DATE)) == [
            datetime(2019, 12, 16, 23, 48, 18, tzinfo=UTC),
            datetime(2019, 12, 17, 23, 48, 18, tzinfo=UTC),
        ]

    def rejects_incomplete_http_dates():
        with pytest.raises(ParseError):
            many_dates(["Mon, 16 Dec 2019 23:48:18 GMT, Tue"], TimestampFormat.HTTP_DATE)

    def reads_epoch_seconds(expect):
        expect(many_dates(["0, 1.5"], TimestampFormat.EPOCH_SECONDS)) == [
            datetime(1970, 1, 1, tzinfo=UTC),
            datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=UTC),
        ]


def describe_headers_for_prefix():
    def yields_lowercase_suffixes(expect):
        names = ["X-Foo-Abc", "x-foo-def", "x-bar"]
        expect(list(headers_for_prefix(names, "X-Foo-"))) == [("abc", "X-Foo-Abc"), ("def", "x-foo-def")]


def describe_checked_headers():
    def accepts_valid_values(expect):
        expect(checked_header_name("meta", "x-foo-a")) == "x-foo-a"
        expect(checked_header_value("tag", "v1")) == "v1"

    def rejects_invalid_names(expect):
        with pytest.raises(BuildError) as info:
            checked_header_name("meta", "x foo")
        expect(info.value.field) == "meta"

    def rejects_control_characters(expect):
        with pytest.raises(BuildError) as info:
            checked_header_value("tag", "a\nb")
        expect("a\nb" in str(info.value)) == True

    def rejects_surrounding_whitespace(expect):
        with pytest.raises(BuildError) as info:
            checked_header_value("tag", " v1")
        expect("whitespace" in str(info.value)) == True
        with pytest.raises(BuildError):
            checked_header_value("tag", "v1\t")
        expect(checked_header_value("tag", "a b")) == "a b"

    def redacts_sensitive_values(expect):
        with pytest.raises(BuildError) as info:
            checked_header_value("token", "secret\n", sensitive=True)
        expect("secret" in str(info.value)) == False
        expect("{redacted}" in str(info.value)) == True

    def validate_header_name_accepts_tokens():
        validate_header_name("X-Amz-Checksum-Crc32")
