"""Clinical template store and built-in scenario library."""

from ems_trainer.templates.store import (
    InMemoryTemplateStore,
    JsonTemplateStore,
    TemplateStore,
    builtin_store,
    create_store_from_settings,
)

__all__ = [
    "InMemoryTemplateStore",
    "JsonTemplateStore",
    "TemplateStore",
    "builtin_store",
    "create_store_from_settings",
]
