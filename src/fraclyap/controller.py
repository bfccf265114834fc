# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from fraclyap.logging import get_logger

log = get_logger(__name__)


class ConfigurationError(ValueError):
    """An exception raised when the parameters of a run are inconsistent.

    These are always raised before any time step is taken.
    """


# {{{ utils


def _normalize_step_ratio(dt: float, dt_norm: float, *, rtol: float) -> int:
    """Check that *dt_norm* is an integer multiple of *dt*.

    :returns: the number of time steps between two renormalizations.
    """
    ratio = dt_norm / dt
    nrenorm = round(ratio)

    if nrenorm < 1 or abs(ratio - nrenorm) > rtol * max(1.0, ratio):
        raise ConfigurationError(
            "Renormalization interval must be a positive integer multiple of "
            f"the time step: got dt_norm / dt = {ratio!r}"
        )

    return int(nrenorm)


# }}}


# {{{ FixedController


@dataclass(frozen=True)
class FixedController:
    r"""A uniform time discretization with periodic renormalization.

    The discrete times are :math:`t_k = t_{start} + k \Delta t`, for
    :math:`k \in \{0, \dots, n - 1\}`. The tangent basis is renormalized
    every :attr:`nrenorm` steps, i.e. on the 1-based steps that are an exact
    multiple of :attr:`nrenorm`.
    """

    #: Start of the time interval.
    tstart: float
    #: End of the time interval.
    tfinal: float
    #: Number of time steps (including the initial condition).
    nsteps: int
    #: Fixed time step.
    dt: float
    #: Number of time steps between two renormalizations.
    nrenorm: int

    def __post_init__(self) -> None:
        if not np.isfinite(self.dt) or self.dt <= 0:
            raise ConfigurationError(f"Time step must be positive: {self.dt}")

        if self.tstart >= self.tfinal:
            raise ConfigurationError(
                f"Invalid time interval: 'tstart' >= 'tfinal' ({self.tstart} >= "
                f"{self.tfinal})"
            )

        if self.nsteps < 2:
            raise ConfigurationError(
                f"Number of time steps must be at least 2: {self.nsteps}"
            )

        if self.nrenorm < 1:
            raise ConfigurationError(
                f"Renormalization interval must be positive: {self.nrenorm}"
            )

        if self.ncheckpoints < 1:
            raise ConfigurationError(
                "Renormalization interval is longer than the time interval: "
                f"no renormalization in {self.nsteps} steps (every {self.nrenorm})"
            )

    @property
    def dt_norm(self) -> float:
        """Time between two renormalizations."""
        return self.nrenorm * self.dt

    @property
    def ncheckpoints(self) -> int:
        """Number of renormalizations performed in a complete run."""
        # the initial condition (1-based step 1) is never renormalized
        return self.nsteps // self.nrenorm - int(self.nrenorm == 1)

    def time(self, k: int) -> float:
        """Time at the (0-based) step *k*."""
        return self.tstart + k * self.dt

    def is_checkpoint(self, k: int) -> bool:
        """Check if the tangent basis is renormalized at the (0-based) step *k*."""
        return k > 0 and (k + 1) % self.nrenorm == 0


def make_fixed_controller(
    dt: float,
    dt_norm: float,
    tfinal: float,
    tstart: float = 0.0,
    *,
    rtol: float = 1.0e-8,
) -> FixedController:
    """Create a controller with a fixed time step.

    The number of steps is obtained by rounding ``(tfinal - tstart) / dt``,
    such that the last time step is at ``tfinal - dt``.

    :arg dt: fixed time step.
    :arg dt_norm: time between two renormalizations. This must be an integer
        multiple of *dt*, up to a relative tolerance *rtol*.
    :arg tfinal: end of the time span.
    :arg tstart: start of the time span.
    """
    if not np.isfinite(dt) or dt <= 0:
        raise ConfigurationError(f"Time step must be positive: {dt}")

    if not np.isfinite(dt_norm) or dt_norm <= 0:
        raise ConfigurationError(
            f"Renormalization interval must be positive: {dt_norm}"
        )

    if tstart >= tfinal:
        raise ConfigurationError(
            f"Invalid time interval: 'tstart' >= 'tfinal' ({tstart} >= {tfinal})"
        )

    nrenorm = _normalize_step_ratio(dt, dt_norm, rtol=rtol)
    nsteps = round((tfinal - tstart) / dt)

    c = FixedController(
        tstart=tstart,
        tfinal=tfinal,
        nsteps=int(nsteps),
        dt=dt,
        nrenorm=nrenorm,
    )
    log.debug("%s", c)

    return c


# }}}
