"""Parsing of purchase and sale JSON documents.

A purchase document looks like::

    {
      "supplier": "wholesale",
      "date": "2024-03-01",
      "grandTotal": "1500.00",
      "payment": {"cash": "500", "bank": "500", "creditCard": "0"},
      "gst": "0", "pst": "0",
      "middleman": {"id": "broker", "unit": "give", "cash": "50", "credit": "25"},
      "items": [
        {"brand": "Apple", "model": "iPhone 13", "imei": "356789012345678",
         "capacity": "128", "capacityUnit": "GB", "cost": "750",
         "color": "Black", "carrier": "Unlocked", "storageLocation": "Shelf A"}
      ],
      "services": [{"name": "Unlock", "price": "25"}],
      "notes": "..."
    }

A sale document uses ``customer`` instead of ``supplier`` and its items only
need ``imei`` and ``sellingPrice``.
"""

from decimal import Decimal
from typing import Any, Optional

from phoneledger.domain.entities import LineItem, MiddlemanPayment, MiddlemanUnit, PaymentSplit, ServiceLine, ZERO
from phoneledger.domain.errors import ValidationError
from phoneledger.domain.posting import SaleLine
from phoneledger.utils.amount_parser import parse_amount
from phoneledger.utils.date_parser import parse_date


def _amount(data: dict[str, Any], key: str, required: bool = False) -> Decimal:
    value = data.get(key)
    if value is None or value == "":
        if required:
            raise ValidationError(f"Missing '{key}'")
        return ZERO
    try:
        return parse_amount(str(value))
    except ValueError as e:
        raise ValidationError(f"Invalid '{key}': {e}")


def _text(data: dict[str, Any], key: str, required: bool = False) -> Optional[str]:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        if required:
            raise ValidationError(f"Missing '{key}'")
        return None
    return str(value).strip()


def _middleman(data: dict[str, Any]) -> tuple[Optional[str], Optional[MiddlemanPayment]]:
    section = data.get("middleman")
    if not section:
        return None, None
    if not isinstance(section, dict):
        raise ValidationError("'middleman' must be a JSON object")
    unit = _text(section, "unit", required=True)
    try:
        unit = MiddlemanUnit(unit)
    except ValueError:
        raise ValidationError(f"Middleman unit must be 'give' or 'receive', got '{unit}'")
    payment = MiddlemanPayment(
        unit=unit,
        split=PaymentSplit(
            cash=_amount(section, "cash"),
            bank=_amount(section, "bank"),
            credit_card=_amount(section, "creditCard"),
            credit=_amount(section, "credit"),
        ),
    )
    return _text(section, "id", required=True), payment


def _services(data: dict[str, Any]) -> list[ServiceLine]:
    services = data.get("services") or []
    if not isinstance(services, list) or not all(isinstance(service, dict) for service in services):
        raise ValidationError("'services' must be a list of JSON objects")
    return [
        ServiceLine(name=_text(service, "name", required=True), price=_amount(service, "price", required=True))
        for service in services
    ]


def _common(data: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("Document must be a JSON object")
    payment = data.get("payment") or {}
    if not isinstance(payment, dict):
        raise ValidationError("'payment' must be a JSON object")
    raw_date = _text(data, "date")
    try:
        txn_date = parse_date(raw_date) if raw_date else None
    except ValueError as e:
        raise ValidationError(str(e))
    middleman_id, middleman_payment = _middleman(data)
    items = data.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("'items' must be a list")
    if not all(isinstance(item, dict) for item in items):
        raise ValidationError("Every item must be a JSON object")
    kwargs = dict(
        grand_total=_amount(data, "grandTotal", required=True),
        cash=_amount(payment, "cash"),
        bank=_amount(payment, "bank"),
        credit_card=_amount(payment, "creditCard"),
        date=txn_date,
        middleman_id=middleman_id,
        middleman_payment=middleman_payment,
        gst_amount=_amount(data, "gst"),
        pst_amount=_amount(data, "pst"),
        notes=_text(data, "notes"),
        services=_services(data),
    )
    if not items and not kwargs["services"]:
        raise ValidationError("Document needs at least one entry in 'items' or 'services'")
    return kwargs


def parse_purchase_document(data: dict[str, Any]) -> dict[str, Any]:
    """Turn a purchase document into ``PostingService.record_purchase`` arguments."""
    kwargs = _common(data)
    kwargs["supplier_id"] = _text(data, "supplier", required=True)
    kwargs["items"] = [
        LineItem(
            brand=_text(item, "brand", required=True),
            model=_text(item, "model", required=True),
            imei=_text(item, "imei", required=True),
            capacity=_text(item, "capacity") or "",
            capacity_unit=_text(item, "capacityUnit") or "",
            actual_cost=_amount(item, "cost", required=True),
            color=_text(item, "color"),
            carrier=_text(item, "carrier"),
            storage_location=_text(item, "storageLocation"),
        )
        for item in data.get("items") or []
    ]
    return kwargs


def parse_sale_document(data: dict[str, Any]) -> dict[str, Any]:
    """Turn a sale document into ``PostingService.record_sale`` arguments."""
    kwargs = _common(data)
    kwargs["customer_id"] = _text(data, "customer", required=True)
    kwargs["lines"] = [
        SaleLine(imei=_text(item, "imei", required=True), selling_price=_amount(item, "sellingPrice", required=True))
        for item in data.get("items") or []
    ]
    return kwargs
