"""Tests for the sensitivity walk and redaction descriptors."""

import json

from httpbind.generator.bindings import HttpBindingIndex
from httpbind.generator.loader import load
from httpbind.generator.sensitivity import (
    SensitivityDescriptor,
    sensitivity_descriptor,
    find_sensitive_nodes,
    sensitive_member_ids,
)


def _describe(model, name):
    index = HttpBindingIndex(model)
    op = model.expect_shape(f"example.store#{name}")
    return sensitivity_descriptor(
        model,
        model.input_shape(op),
        index.request_bindings(op),
        model.output_shape(op),
        index.response_bindings(op),
    )


def describe_find_sensitive_nodes():
    def stops_at_topmost_sensitive_node(expect):
        model = load(
            json.dumps(
                {
                    "shapes": {
                        "ns#Outer": {
                            "type": "structure",
                            "members": {
                                "Secret": {"target": "ns#Inner", "traits": {"smithy.api#sensitive": {}}},
                                "Plain": {"target": "smithy.api#String"},
                            },
                        },
                        "ns#Inner": {
                            "type": "structure",
                            "members": {"Deep": {"target": "ns#Password"}},
                        },
                        "ns#Password": {"type": "string", "traits": {"smithy.api#sensitive": {}}},
                    }
                }
            )
        )
        nodes = find_sensitive_nodes(model, model.expect_shape("ns#Outer"))
        expect([n.id for n in nodes]) == ["ns#Outer$Secret"]
        ids = sensitive_member_ids(model, model.expect_shape("ns#Outer"))
        expect(ids) == {"ns#Outer$Secret", "ns#Inner$Deep"}

    def terminates_on_recursive_shapes(expect):
        model = load(
            json.dumps(
                {
                    "shapes": {
                        "ns#Node": {
                            "type": "structure",
                            "members": {"Next": {"target": "ns#Node"}},
                        }
                    }
                }
            )
        )
        expect(find_sensitive_nodes(model, model.expect_shape("ns#Node"))) == []


def describe_sensitivity_descriptor():
    def empty_for_operations_without_secrets(expect, store):
        descriptor = _describe(store, "CreateItem")
        expect(descriptor) == SensitivityDescriptor()
        expect(descriptor.is_empty) == True

    def marks_a_single_header(expect, store):
        descriptor = _describe(store, "GetItem")
        expect(descriptor.request_headers) == ("x-token",)
        expect(descriptor.has_path) == False
        expect(descriptor.has_query) == False

    def covers_every_location(expect, store):
        descriptor = _describe(store, "Login")
        expect(descriptor.path_indexes) == (1,)
        expect(descriptor.query_keys) == ("otp",)
        expect(descriptor.query_params) == False
        expect(descriptor.request_headers) == ("x-password",)
        expect(descriptor.request_prefix_headers) == ("x-secret-",)
        expect(descriptor.response_headers) == ("x-session",)
        expect(descriptor.status_code) == True
