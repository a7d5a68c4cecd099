# This package contains collaborators used by the crud and route layers.

from . import email_service
from . import storage_service

__all__ = [
    "email_service",
    "storage_service",
]
