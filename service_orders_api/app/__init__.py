"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Service orders are the primary domain; users, roles and
the audit trail support it.  Each domain exposes a router defined in
``api/v1/endpoints`` and versioning is handled by grouping routers
under the ``api/<version>/`` hierarchy.
"""

from .main import app  # noqa: F401
