from __future__ import annotations

# ==============================================================================
# Ballistics
# ==============================================================================

# Launch speed at power 100 in pixels per sim unit, before the weapon's multiplier.
BASE_LAUNCH_SPEED = 50.0

# Drag magnitude is DRAG_COEFF * air_density * speed, applied against velocity.
DRAG_COEFF = 0.01

# Wind acceleration is scaled by 1 / (1 + WIND_ATTENUATION * |vx|).
WIND_ATTENUATION = 0.1

# Sim units per real second. One unit is one frame at the nominal 60 Hz.
SIM_UNITS_PER_SECOND = 60.0

# ==============================================================================
# Collision
# ==============================================================================

# Direct-hit radius around a tank centre (pixels).
TANK_HITBOX_RADIUS = 40.0

# Swept paths are split into at least this many intervals.
MIN_PATH_SAMPLES = 10

# Splash reaches EXPLOSION_RADIUS + SPLASH_PAD; full damage inside SPLASH_PAD.
SPLASH_PAD = 35.0

# ==============================================================================
# Tank geometry
# ==============================================================================

TANK_BODY_WIDTH = 65.0
TANK_BODY_HEIGHT = 20.0
BARREL_LENGTH = 30.0
MUZZLE_OFFSET = 5.0

TANK_MAX_HEALTH = 100
TANK_DEFAULT_POWER = 50.0
TANK_DEFAULT_ANGLE = 45.0

# Spawn columns as fractions of the field width (left, right).
TANK_SPAWN_FRACTIONS = (0.2, 0.8)

# Probe depth below the tank footprint when checking for support.
GROUND_PROBE_DEPTH = 2.0
MAX_FALL_SPEED = 20.0

# ==============================================================================
# Turn flow
# ==============================================================================

TURN_SWITCH_DELAY_S = 0.05
AI_THINK_DELAY_S = 0.05
AI_DECISION_TIMEOUT_S = 2.0
AI_CANDIDATES_PER_TICK = 64
AI_MEMORY = 5
AI_LEARN_WINDOW = 3
