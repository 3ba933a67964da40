"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from .bucket import BUCKET_DECIMALS, bucket_coordinate, bucket_value, travel_cache_key
from .cache import TravelTimeCache
from .provider import (
    ApproximateRoutingProvider,
    HttpRoutingProvider,
    RoutingProvider,
    build_routing_provider,
    format_duration_label,
    parse_mode_estimates,
)
from .resolver import ResolverStats, TravelTimeResolver

__all__ = [
    "BUCKET_DECIMALS",
    "bucket_value",
    "bucket_coordinate",
    "travel_cache_key",
    "TravelTimeCache",
    "RoutingProvider",
    "HttpRoutingProvider",
    "ApproximateRoutingProvider",
    "build_routing_provider",
    "format_duration_label",
    "parse_mode_estimates",
    "ResolverStats",
    "TravelTimeResolver",
]
