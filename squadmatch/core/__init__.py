"""
Server framework

Services are constructed explicitly by `ServerInstance` in dependency order,
so this package only defines their common lifecycle.
"""

from .service import Service

__all__ = (
    "Service",
)
