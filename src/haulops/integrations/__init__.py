"""External integrations."""

from .eld import (
    ENDPOINTS,
    DriverLocation,
    ELDProvider,
    GeotabProvider,
    HosStatus,
    MotiveProvider,
    SamsaraProvider,
    TruckStatus,
    get_provider,
    ping_providers,
)

__all__ = [
    "ENDPOINTS",
    "DriverLocation",
    "ELDProvider",
    "GeotabProvider",
    "HosStatus",
    "MotiveProvider",
    "SamsaraProvider",
    "TruckStatus",
    "get_provider",
    "ping_providers",
]
