"""
Street lookup services
"""
from .street_oracle import (
    EXCLUDED_HIGHWAY_CLASSES,
    OverpassStreetOracle,
    StreetCheck,
    StreetOracle,
    build_street_query,
)

__all__ = [
    "EXCLUDED_HIGHWAY_CLASSES",
    "OverpassStreetOracle",
    "StreetCheck",
    "StreetOracle",
    "build_street_query",
]
