"""Tests for reading the httpChecksum trait."""

import json

import pytest

from httpbind.generator.bindings import ClassificationError
from httpbind.generator.checksums import checksum_policy
from httpbind.generator.loader import load
from httpbind.generator.protocols import PROTOCOLS
from httpbind.proto.checksums import ChecksumAlgorithm

REST_JSON = PROTOCOLS["restJson1"]


def _policy(store, name):
    return checksum_policy(store, store.expect_shape(f"example.store#{name}"), REST_JSON)


def _model_with_trait(trait, members=None):
    shapes = {
        "ns#Op": {
            "type": "operation",
            "input": {"target": "ns#OpInput"},
            "traits": {"aws.protocols#httpChecksum": trait},
        },
        "ns#OpInput": {
            "type": "structure",
            "members": members or {"Algo": {"target": "smithy.api#String"}, "Count": {"target": "smithy.api#Integer"}},
        },
    }
    return load(json.dumps({"shapes": shapes}))


def describe_checksum_policy():
    def none_without_trait(expect, store):
        expect(_policy(store, "GetItem")) == None

    def reads_request_settings(expect, store):
        policy = _policy(store, "PutItem")
        expect(policy.request_algorithm_member.name) == "ChecksumAlgorithm"
        expect(policy.request_checksum_required) == True
        expect(policy.default_algorithm) == ChecksumAlgorithm.CRC32
        expect(policy.calculates_request_checksum) == True
        expect(policy.validates_response) == False

    def default_member_value_uses_enum_wire_value(expect, store):
        expect(_policy(store, "PutItem").default_member_value(store)) == "CRC32"

    def reads_response_settings(expect, store):
        policy = _policy(store, "FetchItem")
        expect(policy.request_validation_mode_member.name) == "ChecksumMode"
        expect(policy.response_algorithms) == ("crc32", "sha256")
        expect(policy.validates_response) == True
        expect(policy.calculates_request_checksum) == False

    def names_checksum_headers(expect, store):
        expect(_policy(store, "FetchItem").header_name("SHA256")) == "x-amz-checksum-sha256"


def describe_checksum_policy_errors():
    def rejects_unknown_members():
        model = _model_with_trait({"requestAlgorithmMember": "Missing"})
        with pytest.raises(ClassificationError, match="not a member"):
            checksum_policy(model, model.expect_shape("ns#Op"), REST_JSON)

    def rejects_non_string_members():
        model = _model_with_trait({"requestAlgorithmMember": "Count"})
        with pytest.raises(ClassificationError, match="string or enum"):
            checksum_policy(model, model.expect_shape("ns#Op"), REST_JSON)

    def rejects_unknown_algorithms():
        model = _model_with_trait({"requestValidationModeMember": "Algo", "responseAlgorithms": ["MD5"]})
        with pytest.raises(ClassificationError, match="unknown checksum algorithm"):
            checksum_policy(model, model.expect_shape("ns#Op"), REST_JSON)

    def response_algorithms_need_a_mode_member():
        model = _model_with_trait({"responseAlgorithms": ["CRC32"]})
        with pytest.raises(ClassificationError, match="requestValidationModeMember"):
            checksum_policy(model, model.expect_shape("ns#Op"), REST_JSON)
