"""Tests for entity service."""

import pytest
from decimal import Decimal

from phoneledger.domain.entities import EntityKind, MYSELF_CASH_ID
from phoneledger.domain.errors import ConflictError, NotFoundError, ValidationError


def test_create_entity(entity_service):
    """Test creating an entity with a generated ID."""
    entity_id = entity_service.create_entity(EntityKind.CUSTOMER, "  Alice  ")

    ent = entity_service.get_entity(entity_id)
    assert ent.name == "Alice"
    assert ent.kind == EntityKind.CUSTOMER
    assert ent.balance == Decimal("0")
    assert ent.history == ()


def test_create_entity_duplicate_id(entity_service, supplier):
    with pytest.raises(ConflictError, match="already exists"):
        entity_service.create_entity(EntityKind.CUSTOMER, "Other", entity_id=supplier)


def test_create_entity_reserved_id(entity_service):
    with pytest.raises(ValidationError, match="reserved"):
        entity_service.create_entity(EntityKind.CUSTOMER, "Me", entity_id=MYSELF_CASH_ID)


def test_create_entity_empty_name(entity_service):
    with pytest.raises(ValidationError):
        entity_service.create_entity(EntityKind.SUPPLIER, "   ")


def test_resolve_returns_kind(entity_service, middleman):
    kind, ent = entity_service.resolve(middleman)

    assert kind == EntityKind.MIDDLEMAN
    assert ent.id == middleman


def test_resolve_unknown(entity_service):
    with pytest.raises(NotFoundError, match="customers, middlemen or suppliers"):
        entity_service.resolve("nobody")


def test_list_entities_by_kind(entity_service, supplier, customer, middleman):
    assert {ent.id for ent in entity_service.list_entities()} == {supplier, customer, middleman}
    assert [ent.id for ent in entity_service.list_entities(kind=EntityKind.SUPPLIER)] == [supplier]
