# SPDX-FileCopyrightText: 2025 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from fraclyap.events import RenormalizationCompleted
from fraclyap.logging import get_logger
from fraclyap.stepping import GrunwaldLetnikovMethod, evolve
from fraclyap.typing import Array

log = get_logger(__name__)


# {{{ LyapunovExponents


@dataclass(frozen=True)
class LyapunovExponents:
    """A record of the Lyapunov exponent estimates at each renormalization.

    The record is filled by :meth:`append` during the evolution and is meant
    to be used as a read-only sequence of ``(t, exponents)`` pairs afterwards.

    .. automethod:: __len__
    .. automethod:: __getitem__
    """

    dim: int
    """Number of exponents (dimension of the system)."""

    _t: list[float] = field(default_factory=list, repr=False)
    _exponents: list[Array] = field(default_factory=list, repr=False)

    def __len__(self) -> int:
        """
        :returns: the number of recorded renormalizations.
        """
        return len(self._t)

    def __getitem__(self, k: int) -> tuple[float, Array]:
        """
        :returns: the time and exponent estimate at the *k*-th renormalization.
        """
        return self._t[k], self._exponents[k]

    def append(self, t: float, exponents: Array) -> None:
        """Record a new estimate *exponents* at time *t*."""
        if exponents.shape != (self.dim,):
            raise ValueError(
                f"Expected exponents of shape {(self.dim,)}: got {exponents.shape}"
            )

        exponents = np.array(exponents, copy=True)
        exponents.flags.writeable = False

        self._t.append(float(t))
        self._exponents.append(exponents)

    @property
    def t(self) -> Array:
        """Times at which the exponents were recorded, of shape ``(n,)``."""
        return np.array(self._t)

    @property
    def exponents(self) -> Array:
        """Time series of the exponents of shape ``(n, d)``."""
        if not self._exponents:
            return np.empty((0, self.dim))

        return np.array(self._exponents)

    @property
    def final(self) -> Array:
        """The last (and most converged) estimate of the exponents."""
        if not self._exponents:
            raise IndexError("No Lyapunov exponents have been recorded")

        return self._exponents[-1]


# }}}


# {{{ lyapunov_exponents


def _stringify_exponents(lyap: LyapunovExponents) -> str:
    from rich.table import Table

    from fraclyap.logging import stringify_table

    t, exponents = lyap[-1]

    table = Table(title=f"Lyapunov exponents at t = {t:.5e}")
    table.add_column("Index", justify="right")
    table.add_column("Exponent", justify="right")
    for i, le in enumerate(exponents):
        table.add_row(str(i), f"{le:.8e}")

    return stringify_table(table)


@dataclass(frozen=True)
class LyapunovResult:
    """The results of :func:`lyapunov_exponents`."""

    t: Array
    """Time steps at which the solution was approximated, of shape ``(n,)``."""
    y: Array
    """Solution at each time step, of shape ``(d, n)``."""
    fundamental: Array
    """Tangent matrix at each time step, of shape ``(n, d, d)``. At
    renormalization steps, this contains the orthonormalized basis."""
    lyap: LyapunovExponents
    """Recorded Lyapunov exponent estimates."""

    @property
    def exponents(self) -> Array:
        """The final estimate of the Lyapunov exponents."""
        return self.lyap.final


def lyapunov_exponents(
    m: GrunwaldLetnikovMethod,
    *,
    quiet: bool = False,
    log_per_checkpoint: int = 1,
    maxcheckpoints: int | None = None,
) -> LyapunovResult:
    """Compute all the Lyapunov exponents using the method *m* based on
    [Li2023]_.

    :arg quiet: if *True*, suppress any output.
    :arg log_per_checkpoint: a number of renormalizations at which to print
        the progress and current estimate of the exponents.
    :arg maxcheckpoints: if given, stop the evolution after this many
        renormalizations. The trajectories are truncated at that time step.
    """
    from fraclyap.utils import TicTocTimer

    if log_per_checkpoint <= 0:
        raise ValueError(
            f"'log_per_checkpoint' must be positive: {log_per_checkpoint}"
        )

    if maxcheckpoints is not None and maxcheckpoints <= 0:
        raise ValueError(f"'maxcheckpoints' must be positive: {maxcheckpoints}")

    history = m.make_default_history()
    lyap = LyapunovExponents(dim=m.dim)

    time = TicTocTimer()
    time.tic()

    for event in evolve(m, history=history):
        if not isinstance(event, RenormalizationCompleted):
            continue

        lyap.append(event.tlyap, event.exponents)
        if not quiet and len(lyap) % log_per_checkpoint == 0:
            time.toc()
            log.info("%s (%s)", event, time.short())
            time.tic()

        if maxcheckpoints is not None and len(lyap) >= maxcheckpoints:
            break

    if not quiet and lyap:
        log.info("Checkpoint timing: %s", time.stats())
        log.info("Lyapunov exponents:\n%s", _stringify_exponents(lyap))

    return LyapunovResult(
        t=np.array(history.ts[: len(history)], copy=True),
        y=np.array(history.ys.T, copy=True),
        fundamental=np.array(history.fundamentals, copy=True),
        lyap=lyap,
    )


# }}}
