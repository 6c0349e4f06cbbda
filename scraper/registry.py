"""Adapter registry keyed by source kind."""
import importlib
from typing import TYPE_CHECKING, Dict, List, Type

from processor.models import SourceKind

if TYPE_CHECKING:
    from scraper.base_adapter import SourceAdapter

ADAPTER_REGISTRY: Dict[SourceKind, Type['SourceAdapter']] = {}

ADAPTER_MODULES = [
    'scraper.generic_html',
    'scraper.yandex_afisha',
    'scraper.expomap',
    'scraper.eventbrite',
    'scraper.timepad',
    'scraper.kudago_api',
    'scraper.timepad_api',
]


def register_adapter(kind: SourceKind):
    """Decorator to register an adapter class for a source kind."""
    def decorator(cls):
        cls.KIND = kind
        ADAPTER_REGISTRY[kind] = cls
        return cls
    return decorator


def load_adapters() -> None:
    """Import every adapter module so each one registers itself."""
    for module in ADAPTER_MODULES:
        importlib.import_module(module)


def get_adapter_class(kind: SourceKind) -> Type['SourceAdapter']:
    """Return the adapter class for kind, or the generic HTML adapter."""
    load_adapters()
    if kind in ADAPTER_REGISTRY:
        return ADAPTER_REGISTRY[kind]
    return ADAPTER_REGISTRY[SourceKind.GENERIC_HTML]


def list_adapter_kinds() -> List[SourceKind]:
    load_adapters()
    return sorted(ADAPTER_REGISTRY, key=lambda kind: kind.value)
