"""shipcat - multi-target build and release orchestration."""

__version__ = "0.1.0"
