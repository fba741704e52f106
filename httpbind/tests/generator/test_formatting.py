"""Tests for wire formatting rules."""

import json

import pytest

from httpbind.generator.bindings import HttpLocation
from httpbind.generator.formatting import (
    FormatResolutionError,
    ValueTransform,
    determine_timestamp_format,
    format_rule,
)
from httpbind.generator.loader import load
from httpbind.generator.protocols import PROTOCOLS
from httpbind.proto.timestamps import TimestampFormat

REST_JSON = PROTOCOLS["restJson1"]


@pytest.fixture
def model():
    shapes = {
        "ns#Holder": {
            "type": "structure",
            "members": {
                "Text": {"target": "smithy.api#String"},
                "Media": {"target": "ns#Json"},
                "Color": {"target": "ns#Color"},
                "Level": {"target": "ns#Level"},
                "Count": {"target": "smithy.api#Integer"},
                "Ratio": {"target": "smithy.api#Double"},
                "Flag": {"target": "smithy.api#Boolean"},
                "Amount": {"target": "smithy.api#BigDecimal"},
                "When": {"target": "smithy.api#Timestamp"},
                "WhenEpoch": {
                    "target": "smithy.api#Timestamp",
                    "traits": {"smithy.api#timestampFormat": "epoch-seconds"},
                },
                "Stamp": {"target": "ns#Stamp"},
                "Data": {"target": "smithy.api#Blob"},
                "Names": {"target": "ns#Names"},
                "Dates": {"target": "ns#Dates"},
                "Nested": {"target": "ns#Nested"},
                "Tags": {"target": "ns#Tags"},
                "ListTags": {"target": "ns#ListTags"},
                "Thing": {"target": "ns#Holder"},
            },
        },
        "ns#Json": {"type": "string", "traits": {"smithy.api#mediaType": "application/json"}},
        "ns#Color": {
            "type": "enum",
            "members": {"RED": {"target": "smithy.api#Unit", "traits": {"smithy.api#enumValue": "red"}}},
        },
        "ns#Level": {
            "type": "intEnum",
            "members": {"LOW": {"target": "smithy.api#Unit", "traits": {"smithy.api#enumValue": 1}}},
        },
        "ns#Stamp": {"type": "timestamp", "traits": {"smithy.api#timestampFormat": "http-date"}},
        "ns#Names": {"type": "list", "member": {"target": "smithy.api#String"}},
        "ns#Dates": {"type": "list", "member": {"target": "smithy.api#Timestamp"}},
        "ns#Nested": {"type": "list", "member": {"target": "ns#Names"}},
        "ns#Tags": {
            "type": "map",
            "key": {"target": "smithy.api#String"},
            "value": {"target": "smithy.api#String"},
        },
        "ns#ListTags": {
            "type": "map",
            "key": {"target": "smithy.api#String"},
            "value": {"target": "ns#Names"},
        },
    }
    return load(json.dumps({"shapes": shapes}))


def _rule(model, name, location):
    member = model.expect_shape("ns#Holder").member(name)
    return format_rule(model, member, location, REST_JSON)


def describe_format_rule():
    def strings_are_quoted_only_in_headers(expect, model):
        header = _rule(model, "Text", HttpLocation.HEADER)
        expect(header.transform) == ValueTransform.STRINGIFY
        expect(header.quote) == True
        expect(header.singular) == True
        expect(_rule(model, "Text", HttpLocation.QUERY).quote) == False

    def media_strings_are_base64_in_headers(expect, model):
        header = _rule(model, "Media", HttpLocation.HEADER)
        expect(header.transform) == ValueTransform.BASE64
        expect(header.media) == True
        expect(_rule(model, "Media", HttpLocation.QUERY).transform) == ValueTransform.STRINGIFY

    def enums_use_their_wire_value(expect, model):
        expect(_rule(model, "Color", HttpLocation.HEADER).transform) == ValueTransform.ENUM
        level = _rule(model, "Level", HttpLocation.QUERY)
        expect(level.transform) == ValueTransform.PRIMITIVE
        expect(level.primitive_kind) == "int"

    def primitives_name_their_kind(expect, model):
        expect(_rule(model, "Count", HttpLocation.HEADER).primitive_kind) == "int"
        expect(_rule(model, "Ratio", HttpLocation.HEADER).primitive_kind) == "float"
        expect(_rule(model, "Flag", HttpLocation.QUERY).primitive_kind) == "bool"
        expect(_rule(model, "Amount", HttpLocation.LABEL).primitive_kind) == "decimal"

    def blobs_are_base64(expect, model):
        expect(_rule(model, "Data", HttpLocation.HEADER).transform) == ValueTransform.BASE64

    def lists_become_collections(expect, model):
        header = _rule(model, "Names", HttpLocation.HEADER)
        expect(header.collection) == True
        expect(header.comma_join) == True
        query = _rule(model, "Names", HttpLocation.QUERY)
        expect(query.collection) == True
        expect(query.comma_join) == False

    def maps_use_their_value_shape(expect, model):
        tags = _rule(model, "Tags", HttpLocation.PREFIX_HEADERS)
        expect(tags.transform) == ValueTransform.STRINGIFY
        expect(tags.collection) == False
        expect(_rule(model, "ListTags", HttpLocation.QUERY_PARAMS).collection) == True


def describe_format_rule_errors():
    def rejects_nested_lists(model):
        with pytest.raises(FormatResolutionError, match="nested lists"):
            _rule(model, "Nested", HttpLocation.HEADER)

    def rejects_list_labels(model):
        with pytest.raises(FormatResolutionError, match="label"):
            _rule(model, "Names", HttpLocation.LABEL)

    def rejects_structures(model):
        with pytest.raises(FormatResolutionError):
            _rule(model, "Thing", HttpLocation.QUERY)

    def rejects_body_locations(model):
        with pytest.raises(FormatResolutionError, match="not formatted as text"):
            _rule(model, "Text", HttpLocation.PAYLOAD)

    def rejects_prefix_headers_on_non_maps(model):
        with pytest.raises(FormatResolutionError, match="needs a map"):
            _rule(model, "Text", HttpLocation.PREFIX_HEADERS)


def describe_determine_timestamp_format():
    def uses_location_defaults(expect, model):
        member = model.expect_shape("ns#Holder").member("When")
        expect(determine_timestamp_format(model, member, HttpLocation.HEADER, REST_JSON)) == (
            TimestampFormat.HTTP_DATE
        )
        expect(determine_timestamp_format(model, member, HttpLocation.QUERY, REST_JSON)) == (
            TimestampFormat.DATE_TIME
        )

    def falls_back_to_protocol_default(expect, model):
        member = model.expect_shape("ns#Holder").member("When")
        expect(determine_timestamp_format(model, member, HttpLocation.DOCUMENT, REST_JSON)) == (
            TimestampFormat.EPOCH_SECONDS
        )

    def member_trait_wins(expect, model):
        member = model.expect_shape("ns#Holder").member("WhenEpoch")
        expect(determine_timestamp_format(model, member, HttpLocation.HEADER, REST_JSON)) == (
            TimestampFormat.EPOCH_SECONDS
        )

    def target_trait_beats_location_default(expect, model):
        member = model.expect_shape("ns#Holder").member("Stamp")
        expect(determine_timestamp_format(model, member, HttpLocation.QUERY, REST_JSON)) == (
            TimestampFormat.HTTP_DATE
        )

    def list_elements_resolve_too(expect, model):
        spec = _rule(model, "Dates", HttpLocation.HEADER)
        expect(spec.transform) == ValueTransform.TIMESTAMP
        expect(spec.timestamp_format) == TimestampFormat.HTTP_DATE
