"""
Unit tests for the external-id lookup helpers

Author: TM3
Date: 2025-12-02
"""
from unittest.mock import Mock
from uuid import uuid4

from app.services.external_sync import (
    lookup_external_entity,
    resolve_external_id,
    should_create_with_specific_id,
)


class TestLookupExternalEntity:

    def test_found_by_external_id_skips_fallback(self):
        entity = object()
        by_external_id = Mock(return_value=entity)
        by_fallback = Mock()

        lookup = lookup_external_entity(" ERP-1 ", "SKU-1", by_external_id, by_fallback)

        assert lookup.entity is entity
        assert lookup.effective_external_id == "ERP-1"
        by_external_id.assert_called_once_with("ERP-1")
        by_fallback.assert_not_called()

    def test_falls_back_when_external_id_unknown(self):
        entity = object()
        by_fallback = Mock(return_value=entity)

        lookup = lookup_external_entity("ERP-1", " SKU-1 ", Mock(return_value=None), by_fallback)

        assert lookup.entity is entity
        by_fallback.assert_called_once_with("SKU-1")

    def test_blank_external_id_is_ignored(self):
        by_external_id = Mock()

        lookup = lookup_external_entity("   ", "SKU-1", by_external_id, Mock(return_value=None))

        assert lookup.is_new
        assert lookup.effective_external_id is None
        by_external_id.assert_not_called()

    def test_nothing_to_look_up(self):
        lookup = lookup_external_entity(None, None, Mock(), Mock())

        assert lookup.is_new


class TestResolveExternalId:

    def test_prefers_external_id(self):
        assert resolve_external_id(" ERP-1 ", uuid4()) == "ERP-1"

    def test_uses_internal_id_when_missing(self):
        entity_id = uuid4()

        assert resolve_external_id(None, entity_id) == str(entity_id)
        assert resolve_external_id("", entity_id) == str(entity_id)

    def test_none_when_neither_given(self):
        assert resolve_external_id(None, None) is None


class TestShouldCreateWithSpecificId:

    def test_only_when_id_given_and_nothing_found(self):
        assert should_create_with_specific_id(uuid4(), None)
        assert not should_create_with_specific_id(uuid4(), object())
        assert not should_create_with_specific_id(None, None)
