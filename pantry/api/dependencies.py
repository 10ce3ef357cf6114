from fastapi import Request

from pantry.services.inventory_ledger import InventoryLedger
from pantry.services.product_lookup import ProductLookupService


def get_lookup_service(request: Request) -> ProductLookupService:
    """Dependency to get the product lookup service built at startup"""
    return request.app.state.lookup_service


def get_ledger(request: Request) -> InventoryLedger:
    """Dependency to get the inventory ledger built at startup"""
    return request.app.state.ledger
