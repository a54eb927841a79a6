"""
Closed-loop move to a target height.

The desk is pulsed in one direction, re-reading the height after every
pulse, until the last observed step would carry it to or past the setpoint.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from desk_mover.protocol import MARGIN_MM, MotionDirection
from desk_mover.session import DeskSession

_LOGGER = logging.getLogger(__name__)

SETTLE_DELAY = 0.05

_ARROWS = {MotionDirection.UP: "↑", MotionDirection.DOWN: "↓"}


class MotionState(Enum):
    IDLE = "idle"
    CONVERGED = "converged"
    MOVING = "moving"
    STOPPED = "stopped"


@dataclass
class MotionResult:
    """Outcome of one move."""

    state: MotionState
    start_height: int
    final_height: int
    setpoint: int
    direction: MotionDirection | None = None
    pulses: int = 0
    capped: bool = False

    @property
    def error(self) -> int:
        return abs(self.final_height - self.setpoint)


class MotionController:
    """Moves a connected desk to a setpoint."""

    def __init__(
        self,
        session: DeskSession,
        settle_delay: float = SETTLE_DELAY,
        max_pulses: int | None = None,
        report: Callable[[str], None] = print,
        quiet: bool = False,
    ):
        self.session = session
        self.settle_delay = settle_delay
        self.max_pulses = max_pulses
        self.report = report
        self.quiet = quiet
        self.state = MotionState.IDLE

    def _log(self, msg: str):
        """Report progress unless in quiet mode."""
        if not self.quiet:
            self.report(msg)

    @staticmethod
    def _keep_moving(direction: MotionDirection, current: int, progress: int, setpoint: int) -> bool:
        # Project one more step of the size just observed
        if direction is MotionDirection.UP:
            return current + progress < setpoint
        return current - progress > setpoint

    async def move_to(self, setpoint: int) -> MotionResult:
        """
        Move the desk to the setpoint in mm.

        Heights within MARGIN_MM of the setpoint count as already there and
        no command is sent. Otherwise the direction is chosen once and the
        move always ends with a single stop command.

        Without max_pulses the loop has no upper bound: a desk whose height
        cannot be read keeps being pulsed.
        """
        self.state = MotionState.IDLE
        current = await self.session.read_height()
        start = current

        self._log("Moving...")
        self._log(f"→ {current} → {setpoint}")

        if abs(current - setpoint) < MARGIN_MM:
            self.state = MotionState.CONVERGED
            return MotionResult(self.state, start, current, setpoint)

        direction = MotionDirection.UP if current < setpoint else MotionDirection.DOWN
        arrow = _ARROWS[direction]
        self.state = MotionState.MOVING
        _LOGGER.debug("Moving %s from %dmm to %dmm", direction.value, current, setpoint)

        progress = 0
        pulses = 0
        capped = False
        while self._keep_moving(direction, current, progress, setpoint):
            if self.max_pulses is not None and pulses >= self.max_pulses:
                _LOGGER.warning("Giving up after %d pulses at %dmm", pulses, current)
                capped = True
                break

            self._log(f"{arrow} {current} → {setpoint}")
            await self.session.send_direction(direction)
            pulses += 1

            height = await self.session.read_height()
            progress = abs(height - current)
            current = height
            await asyncio.sleep(self.settle_delay)

        await self.session.send_direction(MotionDirection.STOP)
        self.state = MotionState.STOPPED

        final = await self.session.read_height()
        self._log(f"→ {final}")

        return MotionResult(self.state, start, final, setpoint, direction, pulses, capped)
