import numpy as np
import pytest

from barrage import Difficulty, Game, GameConfig, GameMode
from barrage.gen.levels import CAMPAIGN_LEVELS


@pytest.mark.parametrize("level_index", [0, 1])
def test_demo_match_runs_to_completion(level_index):
    level = CAMPAIGN_LEVELS[level_index]
    rng = np.random.default_rng(level_index)
    game = Game(level, GameConfig(mode=GameMode.DEMO), rng=rng, difficulty=Difficulty.HARD)

    fired = 0
    turns_seen = 0
    for _ in range(60_000):
        events = game.update(1 / 60)
        for e in events:
            if e["type"] == "fire":
                fired += 1
            elif e["type"] == "turn":
                turns_seen += 1
        if game.outcome() is not None:
            break

    outcome = game.outcome()
    assert outcome is not None, f"no result after {fired} shots"
    assert fired >= 2
    assert outcome.turns == turns_seen + 1
    if outcome.draw:
        assert not any(t.alive for t in game.tanks)
    else:
        assert game.tanks[outcome.winner].alive
        assert sum(t.alive for t in game.tanks) == 1

    # Health only ever goes down and never below zero.
    assert all(0 <= t.health <= t.max_health for t in game.tanks)
