# src/bot_core/actions.py
"""
Wander actions for the activity scheduler.

Each action is a tagged value (ActionKind + fields) rather than a closure,
so selection and execution can be tested separately:

- ActionPicker.pick(...) chooses one action from the configured set.
- apply_action(session, action) is the single handler that turns an
  action into GameSession calls.

Action kinds:
    CONTROL   set one control state true/false
    NAVIGATE  pathfinding goal near a random target
    LOOK      turn head to a random yaw/pitch
    JUMP      hold jump until the next tick resets controls
    SNEAK     hold sneak until the next tick resets controls
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from env.schema import MovementConfig

from .session import ALL_CONTROLS, Control, GameSession, Position

log = logging.getLogger(__name__)


class ActionKind(Enum):
    CONTROL = auto()
    NAVIGATE = auto()
    LOOK = auto()
    JUMP = auto()
    SNEAK = auto()


FLOURISH_KINDS: tuple[ActionKind, ...] = (ActionKind.LOOK, ActionKind.JUMP, ActionKind.SNEAK)


@dataclass(frozen=True)
class WanderAction:
    kind: ActionKind
    control: Optional[Control] = None
    state: bool = False
    target: Optional[Position] = None
    tolerance: float = 1.0
    yaw: float = 0.0
    pitch: float = 0.0

    def describe(self) -> str:
        if self.kind is ActionKind.CONTROL and self.control is not None:
            return f"{self.control.value}={'on' if self.state else 'off'}"
        if self.kind is ActionKind.NAVIGATE and self.target is not None:
            t = self.target
            return f"navigate({t.x:.1f}, {t.y:.1f}, {t.z:.1f})"
        if self.kind is ActionKind.LOOK:
            return f"look(yaw={self.yaw:.2f}, pitch={self.pitch:.2f})"
        return self.kind.name.lower()


def control_actions() -> List[WanderAction]:
    """Every control switched on, then every control switched off."""
    on = [WanderAction(ActionKind.CONTROL, control=c, state=True) for c in ALL_CONTROLS]
    off = [WanderAction(ActionKind.CONTROL, control=c, state=False) for c in ALL_CONTROLS]
    return on + off


def reset_controls(session: GameSession) -> None:
    """Set every movement control to inactive."""
    for control in ALL_CONTROLS:
        session.set_control_state(control, False)


class ActionPicker:
    """
    Chooses the next wander action.

    In "controls" mode the choice is uniform over control_actions(). In
    "pathfinder" mode it is a random target within `wander_radius` of the
    current position (falling back to controls when the session cannot
    navigate). With probability `flourish_chance` a look/jump/sneak
    flourish is chosen instead.
    """

    def __init__(self, config: MovementConfig, rng: Optional[random.Random] = None) -> None:
        self._cfg = config
        self._rng = rng or random.Random()
        self._controls = control_actions()

    @property
    def uses_pathfinder(self) -> bool:
        return self._cfg.mode == "pathfinder"

    def pick(self, origin: Position, *, can_navigate: bool) -> WanderAction:
        if self._cfg.flourish_chance > 0 and self._rng.random() < self._cfg.flourish_chance:
            return self._flourish()

        if self.uses_pathfinder and can_navigate:
            r = self._cfg.wander_radius
            target = origin.offset(
                dx=self._rng.uniform(-r, r),
                dz=self._rng.uniform(-r, r),
            )
            return WanderAction(
                ActionKind.NAVIGATE,
                target=target,
                tolerance=self._cfg.arrival_tolerance,
            )

        return self._rng.choice(self._controls)

    def _flourish(self) -> WanderAction:
        kind = self._rng.choice(FLOURISH_KINDS)
        if kind is ActionKind.LOOK:
            return WanderAction(
                ActionKind.LOOK,
                yaw=self._rng.uniform(-math.pi, math.pi),
                pitch=self._rng.uniform(-math.pi / 4, math.pi / 4),
            )
        return WanderAction(kind)


def apply_action(session: GameSession, action: WanderAction) -> None:
    """Issue `action` through the session's movement primitives."""
    kind = action.kind

    if kind is ActionKind.CONTROL:
        if action.control is None:
            raise ValueError("CONTROL action requires a control")
        session.set_control_state(action.control, action.state)
    elif kind is ActionKind.NAVIGATE:
        if action.target is None:
            raise ValueError("NAVIGATE action requires a target")
        session.set_goal(action.target, action.tolerance)
    elif kind is ActionKind.LOOK:
        session.look(action.yaw, action.pitch)
    elif kind is ActionKind.JUMP:
        session.set_control_state(Control.JUMP, True)
    elif kind is ActionKind.SNEAK:
        session.set_control_state(Control.SNEAK, True)
    else:
        raise ValueError(f"Unsupported action kind: {kind!r}")
