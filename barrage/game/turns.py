from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from ..constants import AI_CANDIDATES_PER_TICK, TURN_SWITCH_DELAY_S

if TYPE_CHECKING:
    from ..agents.targeting import AimTask
    from ..sim.tank import Tank

logger = logging.getLogger("barrage.turns")


class TurnState(Enum):
    WAITING_FOR_INPUT = "waiting_for_input"
    FIRING = "firing"
    RESOLVING_PROJECTILES = "resolving_projectiles"
    TURN_TRANSITION = "turn_transition"
    GAME_OVER = "game_over"


class TurnScheduler:
    """
    Whose turn it is, and whether they may fire.

    WAITING_FOR_INPUT -> FIRING -> RESOLVING_PROJECTILES -> TURN_TRANSITION
    -> WAITING_FOR_INPUT, with GAME_OVER reachable from anywhere once at most
    one tank is left alive. Computer turns start an AimTask through
    `on_ai_turn`; firing stays closed until that task has reported.
    """

    def __init__(
        self,
        tanks: Sequence[Tank],
        ai_players: set[int] | None = None,
        switch_delay_s: float = TURN_SWITCH_DELAY_S,
        ai_budget: int = AI_CANDIDATES_PER_TICK,
        on_ai_turn: Callable[[int], AimTask | None] | None = None,
    ):
        if not tanks:
            raise ValueError("TurnScheduler needs at least one tank")
        self.tanks = tanks
        self.ai_players = set(ai_players or ())
        self.switch_delay_s = max(0.0, float(switch_delay_s))
        self.ai_budget = int(ai_budget)
        self.on_ai_turn = on_ai_turn

        self.state = TurnState.WAITING_FOR_INPUT
        self.current = 0
        self.turn_number = 1
        self.winner: int | None = None
        self._switch_timer: float | None = None
        self.ai_task: AimTask | None = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def game_over(self) -> bool:
        return self.state == TurnState.GAME_OVER

    @property
    def active_tank(self) -> Tank:
        return self.tanks[self.current]

    @property
    def ai_thinking(self) -> bool:
        return self.ai_task is not None and not self.ai_task.done

    def is_ai_turn(self) -> bool:
        return self.current in self.ai_players

    def can_fire(self) -> bool:
        return self.state == TurnState.WAITING_FOR_INPUT and not self.ai_thinking

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin the first turn, skipping to a live tank and waking the AI if needed."""
        if self.check_game_over():
            return
        if not self.active_tank.alive:
            self._advance_index()
        self._begin_turn()

    def begin_fire(self) -> bool:
        if not self.can_fire():
            return False
        self.state = TurnState.FIRING
        return True

    def projectiles_launched(self) -> None:
        if self.state == TurnState.FIRING:
            self.state = TurnState.RESOLVING_PROJECTILES

    def projectiles_resolved(self) -> None:
        """The shot is over: end the game or schedule the hand-over."""
        if self.state not in (TurnState.FIRING, TurnState.RESOLVING_PROJECTILES):
            return
        if self.check_game_over():
            return
        self.state = TurnState.TURN_TRANSITION
        self._switch_timer = self.switch_delay_s

    def update(self, dt_s: float) -> None:
        if self.game_over:
            return
        if self.state == TurnState.TURN_TRANSITION and self._switch_timer is not None:
            self._switch_timer -= dt_s
            if self._switch_timer <= 0.0:
                self.switch_turn()
        if self.ai_task is not None and not self.ai_task.done:
            self.ai_task.step(dt_s, self.ai_budget)

    def switch_turn(self) -> None:
        """Hand the turn to the next live tank. No-op once the game is over."""
        if self.game_over:
            return
        self._switch_timer = None
        if self.check_game_over():
            return
        self._advance_index()
        self.turn_number += 1
        self._begin_turn()

    def check_game_over(self) -> bool:
        if self.game_over:
            return True
        alive = [i for i, t in enumerate(self.tanks) if t.alive]
        if len(self.tanks) > 1 and len(alive) > 1:
            return False
        if len(self.tanks) == 1 and alive:
            return False
        self.winner = alive[0] if len(alive) == 1 else None
        self.state = TurnState.GAME_OVER
        self._switch_timer = None
        if self.ai_task is not None and not self.ai_task.done:
            self.ai_task.cancel()
        if self.winner is None:
            logger.info("Game over: draw")
        else:
            logger.info(f"Game over: tank {self.winner} wins after {self.turn_number} turns")
        return True

    def _advance_index(self) -> None:
        n = len(self.tanks)
        idx = self.current
        for _ in range(n):
            idx = (idx + 1) % n
            if self.tanks[idx].alive:
                self.current = idx
                return

    def _begin_turn(self) -> None:
        self.state = TurnState.WAITING_FOR_INPUT
        self.ai_task = None
        if self.is_ai_turn() and self.on_ai_turn is not None:
            self.ai_task = self.on_ai_turn(self.current)
