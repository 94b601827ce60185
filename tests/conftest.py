"""
Shared test fixtures for the radius dish engine.
"""
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from radius_dish.dish_geometry import DishConfig
from radius_dish.export import DishRequest


@pytest.fixture
def guitar_dish():
    """600x600mm dish, 50mm rim and thickness, 14ft (4267.2mm) radius."""
    return DishConfig(
        dish_width=600.0,
        dish_height=600.0,
        rim_width=50.0,
        thickness=50.0,
        sphere_radius=4267.2,
    )


@pytest.fixture
def deep_dish():
    """A tightly curved rectangular dish so heights are easy to tell apart."""
    return DishConfig(
        dish_width=400.0,
        dish_height=300.0,
        rim_width=30.0,
        thickness=60.0,
        sphere_radius=300.0,
    )


@pytest.fixture
def guitar_request():
    return DishRequest(
        radius="14ft",
        dish_width=600.0,
        dish_height=600.0,
        rim_width=50.0,
        thickness=50.0,
        sections_x=2,
        sections_y=2,
    )
