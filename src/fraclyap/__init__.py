# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import pathlib

import numpy as np

from fraclyap.controller import ConfigurationError, make_fixed_controller
from fraclyap.logging import get_logger
from fraclyap.lyapunov import LyapunovExponents, LyapunovResult, lyapunov_exponents
from fraclyap.renormalization import (
    NumericalInstabilityError,
    RenormalizationMethod,
    make_renormalization_method_from_name,
)
from fraclyap.stepping import GrunwaldLetnikovMethod, Sweep
from fraclyap.typing import Array, JacobianFunction, PathLike, StateFunction

log = get_logger("fraclyap")


# {{{ lyapunov


def lyapunov(
    source: StateFunction,
    source_jac: JacobianFunction,
    y0: Array,
    orders: tuple[float, ...],
    *,
    dt: float,
    dt_norm: float,
    tfinal: float,
    tstart: float = 0.0,
    sweep: Sweep = Sweep.Sequential,
    renormalization: str | RenormalizationMethod = "gs",
    quiet: bool = False,
    log_per_checkpoint: int = 1,
    maxcheckpoints: int | None = None,
) -> LyapunovResult:
    """Compute the Lyapunov exponents of a Grünwald-Letnikov fractional-order
    system.

    This is a small wrapper around :class:`~fraclyap.stepping.GrunwaldLetnikovMethod`
    and :func:`~fraclyap.lyapunov.lyapunov_exponents`.

    :arg source: right-hand side of the system.
    :arg source_jac: Jacobian of *source* with respect to the state.
    :arg y0: initial condition.
    :arg orders: fractional order of each equation, in :math:`(0, 1]`.
    :arg dt: fixed time step.
    :arg dt_norm: time between two renormalizations of the tangent basis, which
        must be an integer multiple of *dt*.
    :arg tfinal: final time of the evolution.
    :arg renormalization: a name (see
        :func:`~fraclyap.renormalization.make_renormalization_method_from_name`)
        or a :class:`~fraclyap.renormalization.RenormalizationMethod`.
    :arg log_per_checkpoint: see :func:`~fraclyap.lyapunov.lyapunov_exponents`.
    :arg maxcheckpoints: see :func:`~fraclyap.lyapunov.lyapunov_exponents`.
    """
    if isinstance(renormalization, str):
        renormalization = make_renormalization_method_from_name(renormalization)

    m = GrunwaldLetnikovMethod(
        orders=tuple(orders),
        control=make_fixed_controller(dt, dt_norm, tfinal, tstart=tstart),
        source=source,
        source_jac=source_jac,
        y0=np.asarray(y0),
        sweep=sweep,
        renormalization=renormalization,
    )

    return lyapunov_exponents(
        m,
        quiet=quiet,
        log_per_checkpoint=log_per_checkpoint,
        maxcheckpoints=maxcheckpoints,
    )


# }}}


# {{{ lyapplot


def lyapplot(
    result: LyapunovResult,
    filename: PathLike | None = None,
    *,
    dark: bool | None = None,
    tail: float = 0.35,
    xlabel: str = "t",
    ylabel: str = "x",
) -> None:
    """Plot the results of :func:`lyapunov`.

    This function creates three figures: the first component of the solution
    in time, the phase portrait of the first two components over the last
    *tail* fraction of the time steps and the Lyapunov exponents in time. If
    a *filename* is given, the figures are saved with the suffixes
    ``-solution``, ``-phase`` and ``-lyapunov``.

    :arg dark: if *True*, a dark themed plot is created instead.
    :arg tail: fraction of the time steps to use for the phase portrait.
    """
    try:
        import matplotlib  # noqa: F401
    except ImportError:
        log.warning("'matplotlib' is not available.")
        return

    if not 0.0 < tail <= 1.0:
        raise ValueError(f"'tail' must be in (0, 1]: {tail}")

    from fraclyap.utils import figure, set_recommended_matplotlib

    set_recommended_matplotlib(dark=dark, overrides={"lines": {"linewidth": 1}})

    def make_filename(suffix: str) -> pathlib.Path | None:
        if filename is None:
            return None

        path = pathlib.Path(filename)
        return path.parent / f"{path.stem}-{suffix}{path.suffix}"

    t = result.t
    y = result.y

    with figure(make_filename("solution")) as fig:
        ax = fig.gca()

        ax.plot(t, y[0])
        ax.set_xlabel(f"${xlabel}$")
        ax.set_ylabel(f"${ylabel}$")

    if y.shape[0] > 1:
        n = int((1.0 - tail) * t.size)
        with figure(make_filename("phase")) as fig:
            ax = fig.gca()

            ax.plot(y[0, n:], y[1, n:])
            ax.set_xlabel(f"${ylabel}$")
            ax.set_ylabel(rf"$\dot{{{ylabel}}}$")

    with figure(make_filename("lyapunov")) as fig:
        ax = fig.gca()

        lyap = result.lyap
        exponents = lyap.exponents
        for i in range(lyap.dim):
            ax.plot(lyap.t, exponents[:, i], label=rf"$\lambda_{{{i + 1}}}$")

        ax.axhline(0.0, color="k", ls="--", lw=0.5)
        ax.set_xlabel(f"${xlabel}$")
        ax.set_ylabel("LE")
        ax.legend()


# }}}

__all__ = (
    "ConfigurationError",
    "GrunwaldLetnikovMethod",
    "LyapunovExponents",
    "LyapunovResult",
    "NumericalInstabilityError",
    "Sweep",
    "lyapplot",
    "lyapunov",
    "lyapunov_exponents",
)
