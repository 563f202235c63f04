# ruff: noqa: E402
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from barrage import Difficulty, Game, GameConfig, GameMode, WeaponKind
from barrage.gen.levels import CAMPAIGN_LEVELS, random_level
from barrage.settings import settings


def run_match(game: Game, weapon: WeaponKind, frame_s: float, max_frames: int) -> dict:
    for tank in game.tanks:
        tank.select_weapon(weapon)

    frames = 0
    shots = 0
    while game.outcome() is None and frames < max_frames:
        events = game.update(frame_s)
        shots += sum(1 for e in events if e["type"] == "fire")
        frames += 1

    outcome = game.outcome()
    return {
        "seed": game.level.seed,
        "biome": game.level.biome.value,
        "frames": frames,
        "shots": shots,
        "winner": "timeout" if outcome is None else ("draw" if outcome.draw else outcome.winner),
        "health": [t.health for t in game.tanks],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless computer-vs-computer matches")
    parser.add_argument("--episodes", type=int, default=3)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--difficulty", type=str, default="medium", choices=[d.value for d in Difficulty])
    parser.add_argument("--weapon", type=str, default="standard", choices=[w.value for w in WeaponKind])
    parser.add_argument("--campaign", action="store_true", help="Cycle through the campaign levels")
    parser.add_argument("--fps", type=float, default=60.0)
    parser.add_argument("--max-frames", type=int, default=20_000)
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    rng = np.random.default_rng(args.seed)
    config = GameConfig.from_settings(mode=GameMode.DEMO)
    wins: dict[str, int] = {}
    for ep in range(args.episodes):
        level = CAMPAIGN_LEVELS[ep % len(CAMPAIGN_LEVELS)] if args.campaign else random_level(rng)
        game = Game(level, config, rng=np.random.default_rng(args.seed + ep), difficulty=Difficulty(args.difficulty))
        result = run_match(game, WeaponKind(args.weapon), 1.0 / args.fps, args.max_frames)
        wins[str(result["winner"])] = wins.get(str(result["winner"]), 0) + 1
        print(json.dumps(result))

    print(json.dumps({"episodes": args.episodes, "results": wins}))


if __name__ == "__main__":
    main()
