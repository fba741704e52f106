"""Tests for prefix header customization hooks."""

import dataclasses

import pytest

from httpbind.generator.bindings import HttpBindingIndex, HttpMessageType
from httpbind.generator.customizations import (
    DEFAULT_CUSTOMIZATIONS,
    GenerationContext,
    HttpBindingCustomization,
    RejectEmptyPrefixHeaderKeys,
    Section,
    SortPrefixHeaders,
    render_section,
)
from httpbind.proto import headers


@pytest.fixture
def context(store):
    operation = store.expect_shape("example.store#GetItem")
    bindings = HttpBindingIndex(store).response_bindings(operation)
    return GenerationContext(
        model=store,
        operation=operation,
        container=store.output_shape(operation),
        binding=next(b for b in bindings if b.member.name == "Meta"),
        message_type=HttpMessageType.RESPONSE,
    )


def describe_render_section():
    def base_customization_adds_nothing(expect, context):
        for section in Section:
            expect(HttpBindingCustomization().section(section, context)) == []

    def default_sorts_prefix_headers(expect, context):
        expect(render_section(DEFAULT_CUSTOMIZATIONS, Section.BEFORE_SERIALIZING_PREFIX_HEADERS, context)) == [
            "items.sort(key=lambda item: item[0])"
        ]
        expect(render_section(DEFAULT_CUSTOMIZATIONS, Section.AFTER_DESERIALIZING_PREFIX_HEADERS, context)) == []

    def reject_empty_keys_names_the_prefix(expect, context):
        lines = RejectEmptyPrefixHeaderKeys().section(Section.BEFORE_ITERATING_OVER_PREFIX_HEADERS, context)
        expect(lines[0]) == "for key, name in pairs:"
        expect("x-foo-" in lines[-1]) == True

    def keeps_customization_order(expect, context):
        lines = render_section(
            [SortPrefixHeaders(), SortPrefixHeaders()], Section.BEFORE_SERIALIZING_PREFIX_HEADERS, context
        )
        expect(len(lines)) == 2


def describe_reject_empty_prefix_header_keys():
    def raises_for_a_bare_prefix_header(context):
        code = "\n".join(RejectEmptyPrefixHeaderKeys().section(Section.BEFORE_ITERATING_OVER_PREFIX_HEADERS, context))
        with pytest.raises(headers.ParseError, match="has no key after prefix x-foo-"):
            exec(code, {"_h": headers, "pairs": [("a", "x-foo-a"), ("", "x-foo-")]})

    def escapes_prefixes_that_look_like_code(expect, context):
        prefix = 'x-{key}"-'
        odd = dataclasses.replace(context, binding=dataclasses.replace(context.binding, location_name=prefix))
        code = "\n".join(RejectEmptyPrefixHeaderKeys().section(Section.BEFORE_ITERATING_OVER_PREFIX_HEADERS, odd))
        with pytest.raises(headers.ParseError) as info:
            exec(code, {"_h": headers, "pairs": [("", prefix)]})
        expect(str(info.value).endswith(f"has no key after prefix {prefix}")) == True
