"""Registry publishing."""

from shipcat.publish.credentials import PublishCredentials
from shipcat.publish.publisher import Publisher, crate_package, publish_order
from shipcat.publish.registry import (
    CrateRegistry,
    NpmRegistry,
    Registry,
    default_registries,
)

__all__ = [
    "CrateRegistry",
    "NpmRegistry",
    "PublishCredentials",
    "Publisher",
    "Registry",
    "crate_package",
    "default_registries",
    "publish_order",
]
