import numpy as np
import pytest

from barrage.gen.biomes import EnvironmentEffects
from barrage.sim.tank import Tank
from barrage.sim.world import TerrainField


@pytest.fixture
def calm():
    return EnvironmentEffects(wind_x=0.0, wind_y=0.0, gravity=1.0, air_density=1.0)


@pytest.fixture
def flat_terrain():
    # 800x600 field, ground from row 500 down
    return TerrainField.flat(width=800, height=600, surface_y=500)


@pytest.fixture
def make_tank():
    def _make(tank_id: int, x: float, y: float = 490.0, facing: int = 1, **kwargs) -> Tank:
        return Tank(tank_id=tank_id, x=x, y=y, facing=facing, **kwargs)

    return _make


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
