"""Entity domain service."""

import uuid
from typing import Optional
from phoneledger.database.base import Database
from phoneledger.domain.entities import Entity, EntityKind, is_myself
from phoneledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    entity_not_found,
)


class EntityService:
    """Service for managing customers, middlemen and suppliers."""

    def __init__(self, db: Database):
        """Initialize entity service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_entity(self, kind: EntityKind, name: str, entity_id: Optional[str] = None) -> str:
        """Create a new entity with a zero balance.

        Args:
            kind: Customer, middleman or supplier
            name: Display name
            entity_id: Optional explicit ID (generated when omitted)

        Returns:
            Entity ID

        Raises:
            ValidationError: If the name is empty or the ID is reserved
            ConflictError: If the ID is already taken
        """
        if not name or not name.strip():
            raise ValidationError("Entity name must not be empty")
        if entity_id is None:
            entity_id = uuid.uuid4().hex
        if is_myself(entity_id):
            raise ValidationError(f"'{entity_id}' is reserved")
        if self.db.get_entity(entity_id) is not None:
            raise ConflictError(f"Entity with id '{entity_id}' already exists")
        return self.db.create_entity(entity_id=entity_id, kind=EntityKind(kind), name=name.strip())

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        """Get entity by ID.

        Args:
            entity_id: Entity ID

        Returns:
            Entity or None if not found
        """
        return self.db.get_entity(entity_id)

    def resolve(self, entity_id: str) -> tuple[EntityKind, Entity]:
        """Resolve an ID to its kind and entity.

        Raises:
            NotFoundError: If no customer, middleman or supplier has the ID
        """
        entity = self.db.get_entity(entity_id)
        if entity is None:
            raise NotFoundError(entity_not_found(entity_id))
        return entity.kind, entity

    def list_entities(self, kind: Optional[EntityKind] = None) -> list[Entity]:
        """List entities, optionally only one kind."""
        return self.db.list_entities(kind=kind)
