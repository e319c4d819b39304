"""HTTP API for rcbundle."""

from rcbundle.api.main import create_app

__all__ = ["create_app"]
