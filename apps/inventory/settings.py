"""
Inventory app settings.

These are loaded by the dynaconf framework after apps/settings/defaults.py.
They can be overridden by environment variables prefixed with CLOUD_INVENTORY_.

Example overrides:
    CLOUD_INVENTORY_INVENTORY_CRAWL_MAX_WORKERS=8
    CLOUD_INVENTORY_INVENTORY_CRAWL_MAX_PENDING=50000
    CLOUD_INVENTORY_INVENTORY_RETENTION_DAYS=30
    CLOUD_INVENTORY_INVENTORY_RESOURCE_TYPES_DISABLED='["dataset"]'
"""

# Crawl roots, as "<collection>/<id>" (e.g. "organizations/1234")
INVENTORY_ROOT_RESOURCE_IDS = []

# API client adapter (dotted path) and the keyword options it is built with
INVENTORY_API_CLIENT = "inventory_crawler.client.FixtureApiClient"
INVENTORY_API_CLIENT_OPTIONS = {}

# Concurrent enumerations per crawl; 1 crawls inline on the calling thread
INVENTORY_CRAWL_MAX_WORKERS = 4

# Work items a crawl keeps queued; further parents wait until the queue drains
INVENTORY_CRAWL_MAX_PENDING = 10000

# Completed indexes older than this many days are removed by `inventory purge`
INVENTORY_RETENTION_DAYS = 7

# Recoverable crawl errors kept on each index (all of them are counted)
INVENTORY_MAX_RECORDED_ERRORS = 100

# Resource types never enumerated (pruned from the registry at startup)
INVENTORY_RESOURCE_TYPES_DISABLED = []

# Rows per bulk insert when importing an index into a model
INVENTORY_IMPORT_BATCH_SIZE = 500
