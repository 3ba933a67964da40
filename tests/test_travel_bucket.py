import random

import pytest

from mf_engine.models import Coordinate
from mf_engine.travel.bucket import bucket_coordinate, bucket_value, travel_cache_key


def test_bucket_is_idempotent() -> None:
    rng = random.Random(7)
    samples = [rng.uniform(-180.0, 180.0) for _ in range(2000)] + [0.0005, -0.0005, 0.1235, -0.0001, 89.9999]
    for value in samples:
        once = bucket_value(value)
        assert bucket_value(once) == once


def test_nearby_points_share_a_bucket_and_key() -> None:
    viewer = Coordinate(51.509, -0.118)
    candidate = Coordinate(51.5094, -0.1181)
    assert bucket_coordinate(candidate) == Coordinate(51.509, -0.118)
    assert travel_cache_key(viewer, candidate) == "51.509,-0.118|51.509,-0.118"


def test_negative_zero_folds_into_zero() -> None:
    assert travel_cache_key(Coordinate(-0.0001, 0.0), Coordinate(0.0, -0.0002)) == "0.000,0.000|0.000,0.000"


@pytest.mark.parametrize("lat,lng", [(float("nan"), 0.0), (0.0, float("inf")), (91.0, 0.0), (0.0, -181.0)])
def test_invalid_coordinates(lat, lng) -> None:
    assert not Coordinate(lat, lng).is_valid()
