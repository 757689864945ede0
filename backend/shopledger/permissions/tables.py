# Overview: Table classes grouping tables that share one access policy row.


class TableClass:
    """Policy rows of the access matrix."""
    SUPPLY = "SUPPLY"          # products, suppliers, purchase orders
    FRONT_DESK = "FRONT_DESK"  # customers, sales orders
    BACK_OFFICE = "BACK_OFFICE"  # categories, payments, cash transactions


class Operation:
    READ = "read"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"

    ALL = (READ, INSERT, UPDATE, DELETE)


# Order line tables follow their header table.
TABLE_CLASSES = {
    "products": TableClass.SUPPLY,
    "suppliers": TableClass.SUPPLY,
    "purchase_orders": TableClass.SUPPLY,
    "purchase_order_items": TableClass.SUPPLY,
    "customers": TableClass.FRONT_DESK,
    "sales_orders": TableClass.FRONT_DESK,
    "sales_order_items": TableClass.FRONT_DESK,
    "categories": TableClass.BACK_OFFICE,
    "payments": TableClass.BACK_OFFICE,
    "cash_transactions": TableClass.BACK_OFFICE,
}
