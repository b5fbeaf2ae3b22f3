"""API client package for the schedule keeper."""

from .client import APIClient
from .models import (
    AllowlistEntry,
    AllowlistResponse,
    AutowrapContracts,
    ContractsV1,
    NetworkDescriptor,
    StatusComponentUpdate
)

__all__ = [
    "APIClient",
    "AllowlistEntry",
    "AllowlistResponse",
    "AutowrapContracts",
    "ContractsV1",
    "NetworkDescriptor",
    "StatusComponentUpdate"
]
