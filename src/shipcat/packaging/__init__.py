"""npm package assembly."""

from shipcat.packaging.assembler import PackageAssembler, write_manifest

__all__ = ["PackageAssembler", "write_manifest"]
