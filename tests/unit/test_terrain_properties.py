import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from barrage.config import CraterShape, TerrainConfig, TerrainShape
from barrage.sim.world import TerrainField

shapes = st.sampled_from(list(CraterShape))


@settings(deadline=None, max_examples=60)
@given(
    seed=st.integers(min_value=0, max_value=1_000_000),
    cx=st.floats(min_value=-50, max_value=250, allow_nan=False),
    cy=st.floats(min_value=-50, max_value=200, allow_nan=False),
    radius=st.floats(min_value=0, max_value=60, allow_nan=False),
    shape=shapes,
    ratio=st.floats(min_value=0.5, max_value=3.0, allow_nan=False),
)
def test_carve_never_adds_material(seed, cx, cy, radius, shape, ratio):
    field = TerrainField.generate(TerrainConfig(width=200, height=150, seed=float(seed)))
    before = field.cells.copy()
    cols = field.carve(cx, cy, radius, shape, ratio)

    assert not np.any(field.cells & ~before)
    changed = np.flatnonzero((field.cells != before).any(axis=0))
    assert set(changed.tolist()) == set(cols)


class CarveMachine(RuleBasedStateMachine):
    def __init__(self):
        super().__init__()
        self.field = TerrainField.generate(TerrainConfig(width=120, height=90, shape=TerrainShape.MOUNTAINS, seed=3.0))
        self.previous = self.field.cells.copy()

    @rule(
        cx=st.floats(min_value=0, max_value=120, allow_nan=False),
        cy=st.floats(min_value=0, max_value=90, allow_nan=False),
        radius=st.floats(min_value=1, max_value=25, allow_nan=False),
        shape=shapes,
    )
    def carve(self, cx, cy, radius, shape):
        self.previous = self.field.cells.copy()
        self.field.carve(cx, cy, radius, shape, 2.0)

    @invariant()
    def solid_cells_only_shrink(self):
        assert not np.any(self.field.cells & ~self.previous)

    @invariant()
    def columns_are_single_ground_runs(self):
        rows = np.arange(self.field.height)[:, None]
        assert np.array_equal(self.field.cells, rows >= self.field.surface[None, :])


TestCarve = CarveMachine.TestCase
TestCarve.settings = settings(max_examples=25, stateful_step_count=15, deadline=None)
