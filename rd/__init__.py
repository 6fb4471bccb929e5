"""release-domains: lock, deploy and report sfp release candidates."""

__version__ = "1.0.0"
