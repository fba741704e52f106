"""Tests for protocol descriptors and the protocol trait filter."""

import os

import pytest

from httpbind.generator.loader import ModelError, load_file
from httpbind.generator.protocols import PROTOCOLS, filter_model, get_protocol, resolve_protocol
from httpbind.generator.types import HTTP, HTTP_LABEL, HTTP_PAYLOAD, STREAMING
from httpbind.proto.timestamps import TimestampFormat

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


@pytest.fixture
def model():
    return load_file(f"{FILE_DIR}/models/store.json")


def describe_protocol_table():
    def lists_every_protocol(expect):
        expect(sorted(PROTOCOLS)) == [
            "awsJson1_0",
            "awsJson1_1",
            "awsQuery",
            "ec2Query",
            "restJson1",
            "restXml",
            "rpcv2Cbor",
        ]

    def rest_protocols_support_everything(expect):
        expect(PROTOCOLS["restJson1"].supports_everything) == True
        expect(PROTOCOLS["restXml"].supports_everything) == True
        expect(PROTOCOLS["restXml"].default_timestamp_format) == TimestampFormat.DATE_TIME

    def rpc_protocols_drop_http_bindings(expect):
        for name in ("awsJson1_0", "awsJson1_1", "awsQuery", "ec2Query"):
            expect(PROTOCOLS[name].supports_http_bindings) == False
            expect(PROTOCOLS[name].supports_streaming_blob) == True
        expect(PROTOCOLS["rpcv2Cbor"].supports_streaming_blob) == False

    def unknown_protocol_is_a_model_error():
        with pytest.raises(ModelError, match="unknown protocol"):
            get_protocol("soap")


def describe_resolve_protocol():
    def reads_service_trait(expect, model):
        service = model.expect_shape("example.store#Store")
        expect(resolve_protocol(service).name) == "restJson1"

    def honors_override(expect, model):
        service = model.expect_shape("example.store#Store")
        expect(resolve_protocol(service, "awsJson1_0").name) == "awsJson1_0"

    def requires_a_protocol_trait(model):
        with pytest.raises(ModelError, match="no supported protocol"):
            resolve_protocol(model.expect_shape("example.store#GetItem"))


def describe_filter_model():
    def returns_same_model_when_everything_is_supported(expect, model):
        expect(filter_model(model, PROTOCOLS["restJson1"]) is model) == True

    def strips_http_traits_for_rpc_protocols(expect, model):
        filtered = filter_model(model, PROTOCOLS["awsJson1_1"])
        expect(filtered.expect_shape("example.store#GetItem").has_trait(HTTP)) == False
        bucket = filtered.expect_shape("example.store#GetItemInput").member("Bucket")
        expect(bucket.has_trait(HTTP_LABEL)) == False
        body = filtered.expect_shape("example.store#GetItemOutput").member("Body")
        expect(body.has_trait(HTTP_PAYLOAD)) == False
        # Streaming blobs survive where the protocol can carry them
        expect(filtered.expect_shape("example.store#StreamingBlob").has_trait(STREAMING)) == True

    def strips_streaming_when_unsupported(expect, model):
        filtered = filter_model(model, PROTOCOLS["rpcv2Cbor"])
        expect(filtered.expect_shape("example.store#StreamingBlob").has_trait(STREAMING)) == False

    def leaves_input_untouched(expect, model):
        filter_model(model, PROTOCOLS["rpcv2Cbor"])
        expect(model.expect_shape("example.store#GetItem").has_trait(HTTP)) == True

    def is_idempotent(expect, model):
        for protocol in PROTOCOLS.values():
            once = filter_model(model, protocol)
            expect(filter_model(once, protocol) is once) == True
