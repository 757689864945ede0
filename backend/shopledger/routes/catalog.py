# Overview: Flask API routes for master data (categories, products); parses input and returns JSON responses.

"""
Catalog Routes

SECURITY: All routes require authentication.
- Any authenticated role may read
- Insert/update follow the table's row of the access matrix
- Delete is admin only

Service errors (ValidationError, ConflictError, ...) propagate to the
application error handler, which renders {"error", "details"} JSON.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import json_body, require_auth, require_table_access
from ..permissions import Operation
from ..services import catalog_service


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def register_resource_routes(bp: Blueprint, resource: str) -> None:
    """Attach list/create/get/update/delete routes for a master-data table."""

    @bp.get("")
    @require_auth
    @require_table_access(resource, Operation.READ)
    def list_route():
        rows = catalog_service.list_records(
            g.current_profile,
            resource,
            search=request.args.get("search"),
            category_id=request.args.get("category_id", type=int),
            low_stock=request.args.get("low_stock", "false").lower() == "true",
        )
        return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})

    @bp.post("")
    @require_auth
    @require_table_access(resource, Operation.INSERT)
    def create_route():
        data = json_body()
        row = catalog_service.create_record(g.current_profile, resource, data)
        return jsonify(row.to_dict()), 201

    @bp.get("/<int:row_id>")
    @require_auth
    @require_table_access(resource, Operation.READ)
    def get_route(row_id: int):
        row = catalog_service.get_record(g.current_profile, resource, row_id)
        return jsonify(row.to_dict())

    @bp.patch("/<int:row_id>")
    @require_auth
    @require_table_access(resource, Operation.UPDATE)
    def update_route(row_id: int):
        """
        Partial update. Send "version_id" (from the last read) to make the
        write fail with 409 if the row changed in between.
        """
        data = json_body()
        row = catalog_service.update_record(g.current_profile, resource, row_id, data)
        return jsonify(row.to_dict())

    @bp.delete("/<int:row_id>")
    @require_auth
    @require_table_access(resource, Operation.DELETE)
    def delete_route(row_id: int):
        catalog_service.delete_record(g.current_profile, resource, row_id)
        return jsonify({"message": "Deleted", "id": row_id})


register_resource_routes(categories_bp, "categories")
register_resource_routes(products_bp, "products")
