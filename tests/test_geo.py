"""
Tests for great-circle distance.
"""

import math
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forensic.geo import EARTH_RADIUS_KM, distance_km


MARRAKECH = (31.6295, -7.9811)
CASABLANCA = (33.5731, -7.5898)


class TestDistance:
    """Haversine distance behaviour."""

    def test_identical_points_are_zero(self):
        assert distance_km(*MARRAKECH, *MARRAKECH) == 0.0

    def test_distance_is_symmetric(self):
        there = distance_km(*MARRAKECH, *CASABLANCA)
        back = distance_km(*CASABLANCA, *MARRAKECH)
        assert there == pytest.approx(back)

    def test_marrakech_to_casablanca(self):
        """Road trip is ~240km; straight line a little over 200km."""
        assert 200 < distance_km(*MARRAKECH, *CASABLANCA) < 240

    def test_one_degree_of_latitude(self):
        expected = EARTH_RADIUS_KM * math.pi / 180
        assert distance_km(0, 0, 1, 0) == pytest.approx(expected, rel=1e-6)

    def test_antipodal_points_are_stable(self):
        assert distance_km(0, 0, 0, 180) == pytest.approx(math.pi * EARTH_RADIUS_KM)
