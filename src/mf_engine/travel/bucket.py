"""
SignalCraft
Copyright (c) 2026 Chris Menendez.
All Rights Reserved.
See LICENSE for permitted use.
"""

from __future__ import annotations

from mf_engine.models import Coordinate

BUCKET_DECIMALS = 3


def bucket_value(value: float, decimals: int = BUCKET_DECIMALS) -> float:
    # Adding 0.0 folds -0.0 into 0.0 so keys stay stable around the axes.
    return round(float(value), decimals) + 0.0


def bucket_coordinate(coord: Coordinate, decimals: int = BUCKET_DECIMALS) -> Coordinate:
    return Coordinate(bucket_value(coord.lat, decimals), bucket_value(coord.lng, decimals))


def format_coordinate(coord: Coordinate, decimals: int = BUCKET_DECIMALS) -> str:
    return f"{coord.lat:.{decimals}f},{coord.lng:.{decimals}f}"


def travel_cache_key(origin: Coordinate, destination: Coordinate, decimals: int = BUCKET_DECIMALS) -> str:
    """Key for a coordinate pair, e.g. ``51.509,-0.118|51.509,-0.118``."""
    return (
        f"{format_coordinate(bucket_coordinate(origin, decimals), decimals)}"
        f"|{format_coordinate(bucket_coordinate(destination, decimals), decimals)}"
    )
