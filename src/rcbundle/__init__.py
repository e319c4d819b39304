"""rcbundle - resolve and parse translation resource containers."""

__version__ = "0.1.0"
