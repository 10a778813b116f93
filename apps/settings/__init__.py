"""
This is the initialization for the apps.settings module.
don't declare settings here, declare the settings in one of
the following places:

Read Only (overridable)

- `cloud_inventory/settings.py` - Framework defaults

Editable:

- `apps/settings/defaults.py` - Defaults for the whole project
- `apps/core/settings.py` - Core app settings
- `apps/inventory/settings.py` - Crawl, retention and import settings
- `apps/settings/{mode}.py` - Settings specific to the current `CLOUD_INVENTORY_MODE`
- `settings.local.py` - For local settings (git ignored)
- `CLOUD_INVENTORY_` prefixed environment variables

Declaring Settings:

To merge with previously defined setting use any Dynaconf merging markers:

`@merge`, `@merge_unique`, `@insert` on string values and
`dynaconf_merge` or `dynaconf_merge_unique` on data structures.

Examples:

```python
INSTALLED_APPS = "@merge_unique new_app"
INVENTORY_RESOURCE_TYPES_DISABLED = "@merge dataset"
DATABASES__default__PORT = 1234
LOGGING__loggers = {
    "dynaconf_merge": True,
    "foobar": {...}
}
```

Environment variables follow the same rules:

```shell
export CLOUD_INVENTORY_INVENTORY_CRAWL_MAX_WORKERS=8
export CLOUD_INVENTORY_INVENTORY_ROOT_RESOURCE_IDS='["organizations/1234"]'
```
"""

# Must be empty, declare your settings on a separate file.
