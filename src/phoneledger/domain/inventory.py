"""Inventory lookups that run outside a unit of work.

Field-equality queries (brand by name, model by brand and name, phone by
IMEI) cannot run inside an atomic unit, so purchase and sale reversals
resolve their line items here first and hand plain document ids to the read
phase. Anything that changes between this pre-fetch and the commit is
caught by the read phase or by the store's conflict detection.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from phoneledger.database.base import Database
from phoneledger.domain.entities import InventoryUnit, LineItem
from phoneledger.domain.errors import (
    PartialLookupFailureError,
    brand_not_found,
    imei_not_found,
    model_not_found,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPhone:
    """Line item matched to the live phone it created."""

    item: LineItem
    phone_id: str


@dataclass(frozen=True)
class ResolvedModel:
    """Line item matched to the brand and model it belongs under."""

    item: LineItem
    brand_id: str
    model_id: str


@dataclass(frozen=True)
class Prefetch:
    resolved: tuple
    skipped: tuple[str, ...] = ()


class InventoryService:
    """Service for inventory lookups and listings."""

    def __init__(self, db: Database, strict: bool = False):
        """Initialize inventory service.

        Args:
            db: Database instance
            strict: Raise on the first unresolvable line item instead of
                logging it and skipping it
        """
        self.db = db
        self.strict = strict

    def list_inventory(self, brand: Optional[str] = None) -> list[InventoryUnit]:
        return self.db.list_inventory(brand=brand)

    def find_by_imei(self, imei: str) -> Optional[InventoryUnit]:
        return self.db.find_phone_by_imei(imei)

    def _resolve_model(self, item: LineItem) -> Optional[ResolvedModel]:
        brand = self.db.find_brand(item.brand)
        if brand is None:
            self._lookup_failed(item, brand_not_found(item.brand))
            return None
        model = self.db.find_model(brand.id, item.model)
        if model is None:
            self._lookup_failed(item, model_not_found(item.brand, item.model))
            return None
        return ResolvedModel(item=item, brand_id=brand.id, model_id=model.id)

    def _lookup_failed(self, item: LineItem, message: str) -> None:
        if self.strict:
            raise PartialLookupFailureError(f"IMEI {item.imei}: {message}")
        logger.warning("Skipping IMEI %s: %s", item.imei, message)

    def prefetch_models(self, items: Iterable[LineItem]) -> Prefetch:
        """Resolve the brand and model of every line item."""
        resolved = []
        skipped = []
        for item in items:
            match = self._resolve_model(item)
            if match is None:
                skipped.append(item.imei)
            else:
                resolved.append(match)
        return Prefetch(resolved=tuple(resolved), skipped=tuple(skipped))

    def prefetch_phones(self, items: Iterable[LineItem]) -> Prefetch:
        """Resolve the live phone behind every line item."""
        resolved = []
        skipped = []
        for item in items:
            match = self._resolve_model(item)
            if match is None:
                skipped.append(item.imei)
                continue
            phone = self.db.find_phone_by_imei(item.imei, model_id=match.model_id)
            if phone is None:
                self._lookup_failed(item, imei_not_found(item.imei))
                skipped.append(item.imei)
                continue
            resolved.append(ResolvedPhone(item=item, phone_id=phone.id))
        return Prefetch(resolved=tuple(resolved), skipped=tuple(skipped))

    def skip_or_raise(self, item: LineItem, message: str) -> None:
        """Handle a pre-fetched reference that vanished before the read phase."""
        self._lookup_failed(item, message)
