# Overview: Flask API routes for suppliers and customers; parses input and returns JSON responses.

from flask import Blueprint

from .catalog import register_resource_routes


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

register_resource_routes(suppliers_bp, "suppliers")
register_resource_routes(customers_bp, "customers")
