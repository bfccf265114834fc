# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass

from fraclyap.typing import Array


@dataclass(frozen=True)
class Event:
    """Event issued in :func:`~fraclyap.stepping.evolve` describing the state
    of the evolution.
    """


@dataclass(frozen=True)
class StepCompleted(Event):
    """Result of a successful update to time :attr:`t`."""

    t: float
    """Current time."""
    iteration: int
    """Current iteration."""
    dt: float
    """Time step used to reach :attr:`t`."""
    y: Array
    """State at the time :attr:`t`."""

    def __str__(self) -> str:
        return f"[{self.iteration:06d}] t = {self.t:.5e} dt {self.dt:.5e}"


@dataclass(frozen=True)
class RenormalizationCompleted(StepCompleted):
    """Result of a successful update that was followed by a renormalization
    of the tangent basis.

    At this point the accumulated stretching factors and the exponent
    estimates are consistent, so the evolution can be safely stopped.
    """

    tlyap: float
    r"""Time used to normalize the exponents, i.e. :math:`k \Delta t` for the
    1-based step :math:`k`."""
    stretching: Array
    """Stretching factors of each tangent direction at this renormalization."""
    exponents: Array
    """Current estimate of the Lyapunov exponents."""
    progress: float
    """Percentage of the time steps that have been completed."""

    def __str__(self) -> str:
        exponents = "  ,  ".join(f"{le:.3f}" for le in self.exponents)
        return f"completed: {self.progress:3.2f}% LE = {exponents}"
