"""
API module for the REST API implementation.
"""

from .rest_api import CampusRestAPI

__all__ = [
    "CampusRestAPI",
]
