# Overview: Service-layer operations for master data; categories, products, suppliers and customers.

"""
Catalog management

Create / update / delete / list for the master-data tables. Every mutation
is authorized here (denials are audited) and again by the Catalog Store
primitive that performs it.

stock_quantity and debt_balance may be edited directly by admin/manager as an
administrative correction. Such edits carry the version_id the client read;
a settlement that ran in between bumps the version and the edit is refused.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_

from ..extensions import db
from ..errors import ValidationError, NotFoundError, ConflictError
from ..models import (
    Category,
    Product,
    Supplier,
    Customer,
    PurchaseOrderItem,
    SalesOrderItem,
)
from ..permissions import Operation
from ..values import to_decimal
from . import catalog_store, permission_service
from .concurrency import run_with_retry


@dataclass(frozen=True)
class FieldSpec:
    kind: str  # text | amount | signed_amount | category_ref
    required: bool = False
    max_length: int | None = None


_NAME = FieldSpec("text", required=True, max_length=255)
_PHONE = FieldSpec("text", max_length=32)
_EMAIL = FieldSpec("text", max_length=255)
_LONG_TEXT = FieldSpec("text")

FIELDS = {
    Category: {
        "name": _NAME,
        "description": _LONG_TEXT,
    },
    Product: {
        "name": _NAME,
        "sku": FieldSpec("text", required=True, max_length=64),
        "category_id": FieldSpec("category_ref"),
        "description": _LONG_TEXT,
        "unit": FieldSpec("text", max_length=32),
        "cost_price": FieldSpec("amount"),
        "selling_price": FieldSpec("amount"),
        "stock_quantity": FieldSpec("amount"),
        "min_stock_level": FieldSpec("amount"),
    },
    Supplier: {
        "name": _NAME,
        "contact_person": FieldSpec("text", max_length=255),
        "phone": _PHONE,
        "email": _EMAIL,
        "address": _LONG_TEXT,
        "debt_balance": FieldSpec("signed_amount"),
    },
    Customer: {
        "name": _NAME,
        "phone": _PHONE,
        "email": _EMAIL,
        "address": _LONG_TEXT,
        "debt_balance": FieldSpec("signed_amount"),
    },
}

RESOURCES = {
    "categories": Category,
    "products": Product,
    "suppliers": Supplier,
    "customers": Customer,
}


def resolve_resource(resource: str):
    model = RESOURCES.get(resource)
    if model is None:
        raise NotFoundError(f"Unknown resource: {resource!r}")
    return model


def _clean_value(name: str, spec: FieldSpec, value):
    if spec.kind == "text":
        if value is None:
            if spec.required:
                raise ValidationError(f"{name} is required")
            return None
        if not isinstance(value, str):
            raise ValidationError(f"{name} must be a string")
        value = value.strip()
        if spec.required and not value:
            raise ValidationError(f"{name} is required")
        if spec.max_length and len(value) > spec.max_length:
            raise ValidationError(f"{name} must be at most {spec.max_length} characters")
        return value or None

    if spec.kind == "amount":
        return to_decimal(value, name, allow_negative=False)

    if spec.kind == "signed_amount":
        return to_decimal(value, name)

    if spec.kind == "category_ref":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer")
        if db.session.get(Category, value) is None:
            raise NotFoundError(f"Category {value} not found", details={"category_id": value})
        return value

    raise ValueError(f"Unknown field kind {spec.kind}")


def clean_payload(model, payload: dict, *, partial: bool) -> dict:
    """Validate and normalize client fields for model. Unknown fields are rejected."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be an object")

    specs = FIELDS[model]
    unknown = sorted(set(payload) - set(specs))
    if unknown:
        raise ValidationError("Unknown fields", details={"fields": unknown})

    cleaned = {}
    for name, spec in specs.items():
        if name in payload:
            cleaned[name] = _clean_value(name, spec, payload[name])
        elif spec.required and not partial:
            raise ValidationError(f"{name} is required")

    if model is Product and "sku" in cleaned:
        cleaned["sku"] = cleaned["sku"].upper()
    return cleaned


def _check_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"SKU {sku!r} already exists", details={"sku": sku})


def create_record(actor, resource: str, payload: dict):
    model = resolve_resource(resource)
    permission_service.require(actor, model.__tablename__, Operation.INSERT)

    values = clean_payload(model, payload, partial=False)
    if model is Product:
        _check_unique_sku(values["sku"])

    def _op():
        row = catalog_store.insert_row(actor, model, **values)
        db.session.commit()
        return row

    return run_with_retry(_op)


def update_record(actor, resource: str, row_id: int, payload: dict, *, expected_version: int | None = None):
    """
    Partial update. expected_version (or a "version_id" key in payload) makes
    the write conditional on nobody having changed the row since it was read.
    """
    model = resolve_resource(resource)
    permission_service.require(actor, model.__tablename__, Operation.UPDATE)

    payload = dict(payload or {})
    if "version_id" in payload:
        version = payload.pop("version_id")
        if expected_version is None:
            if isinstance(version, bool) or not isinstance(version, int):
                raise ValidationError("version_id must be an integer")
            expected_version = version

    values = clean_payload(model, payload, partial=True)
    if not values:
        raise ValidationError("No fields to update")
    if model is Product and "sku" in values:
        _check_unique_sku(values["sku"], exclude_id=row_id)

    def _op():
        row = catalog_store.update_row(actor, model, row_id, values, expected_version=expected_version)
        db.session.commit()
        return row

    return run_with_retry(_op)


def delete_record(actor, resource: str, row_id: int) -> None:
    """
    Delete a master-data row.

    Products referenced by an order line cannot be deleted (orders are
    immutable). Deleting a category, supplier or customer clears the
    reference on products and orders.
    """
    model = resolve_resource(resource)
    permission_service.require(actor, model.__tablename__, Operation.DELETE)

    if model is Product:
        referenced = (
            db.session.query(PurchaseOrderItem.id).filter(PurchaseOrderItem.product_id == row_id).first()
            or db.session.query(SalesOrderItem.id).filter(SalesOrderItem.product_id == row_id).first()
        )
        if referenced is not None:
            raise ConflictError(
                f"Product {row_id} is referenced by orders and cannot be deleted",
                details={"id": row_id},
            )

    def _op():
        catalog_store.delete_row(actor, model, row_id)
        db.session.commit()

    run_with_retry(_op)


def get_record(actor, resource: str, row_id: int):
    model = resolve_resource(resource)
    permission_service.require(actor, model.__tablename__, Operation.READ)
    return catalog_store.get_row(model, row_id)


def list_records(
    actor,
    resource: str,
    *,
    search: str | None = None,
    category_id: int | None = None,
    low_stock: bool = False,
) -> list:
    model = resolve_resource(resource)
    permission_service.require(actor, model.__tablename__, Operation.READ)

    query = db.session.query(model)
    if search:
        pattern = f"%{search.strip()}%"
        if model is Product:
            query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        else:
            query = query.filter(model.name.ilike(pattern))

    if model is Product:
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if low_stock:
            query = query.filter(Product.stock_quantity < Product.min_stock_level)

    return query.order_by(model.name, model.id).all()
