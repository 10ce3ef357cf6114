from pantry.services.inventory_ledger import InventoryLedger
from pantry.services.network import NetworkStatus, StaticNetworkStatus, HostReachability, create_network_status
from pantry.services.product_api_client import ProductApiClient
from pantry.services.product_lookup import ProductLookupService
