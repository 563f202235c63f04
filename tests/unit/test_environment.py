import logging

import numpy as np
import pytest

from barrage.config import Biome, LevelConfig, Season, TerrainShape, TimeOfDay, Weather
from barrage.gen.biomes import CALM, EnvironmentEffects, describe, effects, wind_variation
from barrage.gen.levels import CAMPAIGN_LEVELS, parse_level, random_level, round_environment


def test_temperate_day_is_neutral():
    assert effects(Biome.TEMPERATE, Weather.NONE, TimeOfDay.DAY) == CALM


def test_biome_baselines():
    arctic = effects(Biome.ARCTIC, Weather.NONE, TimeOfDay.DAY)
    assert arctic.air_density == pytest.approx(1.2)
    assert arctic.wind_x == pytest.approx(0.5)

    desert = effects(Biome.DESERT, Weather.NONE, TimeOfDay.DAY)
    assert desert.air_density == pytest.approx(0.8)
    assert desert.wind_y == pytest.approx(-0.2)

    volcanic = effects(Biome.VOLCANIC, Weather.NONE, TimeOfDay.DAY)
    assert volcanic.gravity == pytest.approx(1.2)
    assert volcanic.air_density == pytest.approx(0.6)


def test_weather_and_night_stack():
    e = effects(Biome.ARCTIC, Weather.SNOW, TimeOfDay.NIGHT)
    assert e.wind_x == pytest.approx((0.5 + 0.4) * 0.7)
    assert e.air_density == pytest.approx(1.35)

    rain = effects(Biome.TEMPERATE, Weather.RAIN, TimeOfDay.DAY)
    assert rain.wind_x == pytest.approx(0.3)
    assert rain.air_density == pytest.approx(1.1)


def test_wind_variation_is_bounded():
    rng = np.random.default_rng(0)
    for _ in range(500):
        dx, dy = wind_variation(rng)
        assert -0.25 <= dx <= 0.25
        assert -0.1 <= dy <= 0.1


def test_describe():
    assert describe(CALM) == "Normal Conditions"
    assert describe(EnvironmentEffects(wind_x=0.5)) == "Strong Wind →"
    assert describe(EnvironmentEffects(wind_x=-0.2)) == "Wind ←"
    text = describe(EnvironmentEffects(wind_y=-0.2, gravity=1.2))
    assert text == "Updrafts ↑ | High Gravity"
    assert describe(EnvironmentEffects(wind_y=0.2, gravity=0.8)) == "Downdrafts ↓ | Low Gravity"


def test_parse_level_accepts_protocol_fields():
    level = parse_level(
        {
            "biome": "desert",
            "shape": "mountains",
            "weather": "rain",
            "roughness": 0.4,
            "timeOfDay": "night",
            "season": "winter",
            "seed": 99,
        }
    )
    assert level == LevelConfig(
        Biome.DESERT, TerrainShape.MOUNTAINS, Weather.RAIN, 0.4, TimeOfDay.NIGHT, Season.WINTER, 99
    )


def test_parse_level_falls_back_to_defaults(caplog):
    with caplog.at_level(logging.WARNING, logger="barrage.levels"):
        level = parse_level({"biome": "lunar", "shape": 7, "roughness": "lots", "seed": "abc"})
    assert level.biome == Biome.TEMPERATE
    assert level.shape == TerrainShape.HILLS
    assert level.roughness == pytest.approx(0.3)
    assert level.seed is None
    assert "lunar" in caplog.text

    assert parse_level({}) == LevelConfig()
    assert parse_level(None) == LevelConfig()
    assert parse_level(["not", "a", "mapping"]) == LevelConfig()  # type: ignore[arg-type]
    assert parse_level({"roughness": 5}).roughness == 1.0


def test_random_level_ranges():
    rng = np.random.default_rng(5)
    for _ in range(50):
        level = random_level(rng)
        assert 0.10 <= level.roughness < 0.50
        assert level.seed is not None


def test_round_environment_adds_one_wind_nudge():
    level = CAMPAIGN_LEVELS[3]
    base = effects(level.biome, level.weather, level.time_of_day)
    env = round_environment(level, np.random.default_rng(11))
    assert env.gravity == base.gravity
    assert env.air_density == base.air_density
    assert abs(env.wind_x - base.wind_x) <= 0.25
    assert abs(env.wind_y - base.wind_y) <= 0.1
