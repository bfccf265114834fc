# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field
from functools import cached_property

import numpy as np

from fraclyap.controller import ConfigurationError, FixedController
from fraclyap.events import Event, RenormalizationCompleted, StepCompleted
from fraclyap.history import LyapunovHistory
from fraclyap.kernels import KernelTable, make_kernel_table
from fraclyap.logging import get_logger
from fraclyap.memory import memory_terms
from fraclyap.renormalization import (
    GramSchmidt,
    NumericalInstabilityError,
    RenormalizationMethod,
    renormalize,
)
from fraclyap.typing import Array, JacobianFunction, StateFunction

log = get_logger(__name__)


@enum.unique
class Sweep(enum.Enum):
    """Order in which the state variables are updated at each time step."""

    #: All the variables are updated using the values at the previous step.
    Explicit = enum.auto()
    #: The variables are updated one by one in their declared order and each
    #: one sees the new values of the variables before it (similar to a
    #: Gauss-Seidel sweep). The right-hand side is evaluated once per variable,
    #: so each step costs ``d`` evaluations instead of one for
    #: :attr:`Explicit`.
    Sequential = enum.auto()


# {{{ method


@dataclass(frozen=True)
class GrunwaldLetnikovMethod:
    r"""A Grünwald-Letnikov discretization of the system

    .. math::

        \begin{cases}
        D^{q_i}[y_i](t) = f_i(t, \mathbf{y}), \\
        D^{q_i}[\Phi_{ij}](t) = (\mathbf{J}_f \Phi)_{ij}, \\
        \mathbf{y}(t_0) = \mathbf{y}_0, \quad \Phi(t_0) = \mathbf{I},
        \end{cases}

    where :math:`\Phi` is the tangent (fundamental) matrix used to compute the
    Lyapunov exponents of the system, following [Li2023]_. At each step, the
    variables are updated by

    .. math::

        y^{k}_i = f_i(t_{k - 1}, \mathbf{y}^*) h^{q_i}
            - \sum_{j = 1}^{k} c^{q_i}_j y^{k - j}_i,

    where :math:`\mathbf{y}^*` depends on the :attr:`sweep` and
    :math:`c^{q}_j` are the weights from
    :func:`~fraclyap.kernels.grunwald_letnikov_weights`. The tangent matrix
    rows use the same update with the order of the corresponding state
    variable and the Jacobian evaluated at :math:`\mathbf{y}^{k - 1}`.

    .. [Li2023] H. Li, Y. Shen, Y. Han, J. Dong, J. Li,
        *Determining Lyapunov Exponents of Fractional-Order Systems:
        A General Method Based on Memory Principle*,
        Chaos, Solitons & Fractals, Vol. 168, pp. 113167--113167, 2023,
        `DOI <https://doi.org/10.1016/j.chaos.2023.113167>`__.
    """

    orders: tuple[float, ...]
    """Fractional order of each equation in the system."""
    control: FixedController
    """Time discretization and renormalization interval."""

    source: StateFunction
    """Right-hand side of the system."""
    source_jac: JacobianFunction
    """Jacobian of :attr:`source` with respect to the state."""
    y0: Array
    """Initial condition of shape ``(d,)``."""

    sweep: Sweep = Sweep.Sequential
    """Order in which the state variables are updated."""
    renormalization: RenormalizationMethod = field(default_factory=GramSchmidt)
    """Method used to orthonormalize the tangent basis."""

    def __post_init__(self) -> None:
        if self.y0.ndim != 1:
            raise ConfigurationError(
                f"Only 1d array variables are supported: y0 has shape {self.y0.shape}"
            )

        if len(self.orders) != self.y0.size:
            raise ConfigurationError(
                f"Fractional orders must match state size: got {len(self.orders)} "
                f"orders for initial conditions of size {self.y0.size}"
            )

        for i, q in enumerate(self.orders):
            if not (np.isfinite(q) and 0.0 < q <= 1.0):
                raise ConfigurationError(
                    f"Only fractional orders in (0, 1] are supported: q[{i}] = {q}"
                )

        t0 = self.control.tstart
        d = self.y0.size

        f = np.shape(self.source(t0, self.y0))
        if f != (d,):
            raise ConfigurationError(
                "Array returned by 'source' does not match y0: "
                f"got shape {f} for y0 of shape {self.y0.shape}"
            )

        jac = np.shape(self.source_jac(t0, self.y0))
        if jac != (d, d):
            raise ConfigurationError(
                "Array returned by 'source_jac' does not match y0: "
                f"got shape {jac} for y0 of shape {self.y0.shape}"
            )

    @property
    def name(self) -> str:
        """An identifier for the method."""
        return type(self).__name__.replace("Method", "")

    @property
    def dim(self) -> int:
        """Dimension of the system."""
        return self.y0.size

    @cached_property
    def kernels(self) -> KernelTable:
        """Grünwald-Letnikov weights for each distinct order in :attr:`orders`."""
        return make_kernel_table(self.orders, self.control.nsteps)

    @cached_property
    def step_factors(self) -> Array:
        r"""Factors :math:`h^{q_i}` for each equation."""
        return np.array([self.control.dt**q for q in self.orders])

    def make_default_history(self) -> LyapunovHistory:
        """Construct a history that can hold all the time steps of the method."""
        return LyapunovHistory.empty_like(self.y0, n=self.control.nsteps)


# }}}


# {{{ evolve


def make_initial_condition(m: GrunwaldLetnikovMethod) -> Array:
    """Construct the initial condition for the augmented system.

    :returns: an array containing the initial state followed by the flattened
        identity matrix, i.e. the tangent directions start as the canonical
        basis.
    """
    d = m.dim
    dtype = np.result_type(m.y0.dtype, np.float64)
    return np.hstack([m.y0.astype(dtype), np.eye(d, dtype=dtype).reshape(-1)])


def advance(m: GrunwaldLetnikovMethod, history: LyapunovHistory, k: int) -> Array:
    """Compute the state and tangent matrix at the (0-based) step *k*.

    :arg history: the history of all previous time steps, i.e. it must
        contain exactly *k* time steps.
    :returns: an array of the same layout as the rows of *history*.
    """
    if len(history) != k:
        raise ValueError(f"History has {len(history)} steps, expected {k}")

    d = m.dim
    hq = m.step_factors
    t, yprev, fprev = history[k - 1]

    mem = memory_terms(history.storage, m.kernels, k)

    # {{{ state

    if m.sweep == Sweep.Sequential:
        y = np.array(yprev, copy=True)
        # NOTE: the full right-hand side is evaluated for every component
        for i in range(d):
            y[i] = m.source(t, y)[i] * hq[i] - mem[i]
    elif m.sweep == Sweep.Explicit:
        y = m.source(t, yprev) * hq - mem[:d]
    else:
        raise ValueError(f"Unknown sweep: {m.sweep}")

    # }}}

    # {{{ tangent

    # NOTE: equations with a zero Jacobian row (e.g. a forcing phase) are only
    # updated by their memory term here
    dphi = m.source_jac(t, yprev) @ fprev
    phi = dphi * hq.reshape(-1, 1) - mem[d:].reshape(d, d)

    # }}}

    return np.hstack([y, phi.reshape(-1)])


def _check_finite(m: GrunwaldLetnikovMethod, k: int, y: Array) -> None:
    (invalid,) = np.nonzero(~np.isfinite(y))
    if not invalid.size:
        return

    d = m.dim
    i = int(invalid[0])
    if i < d:
        what = f"state variable {i}"
    else:
        what = f"tangent matrix entry {divmod(i - d, d)}"

    raise NumericalInstabilityError(
        f"Non-finite value in {what} at t = {m.control.time(k):.5e}",
        iteration=k,
        index=i,
    )


def evolve(
    m: GrunwaldLetnikovMethod,
    *,
    history: LyapunovHistory | None = None,
) -> Iterator[Event]:
    """Evolve the state and tangent system in time.

    The tangent basis is renormalized at every checkpoint given by the
    controller of *m* and the logarithms of the stretching factors are
    accumulated to estimate the Lyapunov exponents. The iteration can be
    stopped after any :class:`~fraclyap.events.RenormalizationCompleted` event
    and the estimates are still consistent.

    :arg history: a :class:`~fraclyap.history.LyapunovHistory` used to store
        the trajectories. This should be empty and is filled in place.

    :returns: a :class:`~fraclyap.events.StepCompleted` event for each time
        step (including the initial condition) or a
        :class:`~fraclyap.events.RenormalizationCompleted` event if the tangent
        basis was renormalized at that step.
    """
    c = m.control
    if history is None:
        history = m.make_default_history()

    if history:
        raise ValueError("History must be empty at the start of the evolution")

    y = make_initial_condition(m)
    history.append(c.tstart, y)
    yield StepCompleted(t=c.tstart, iteration=0, dt=c.dt, y=y[: m.dim])

    lsum = np.zeros(m.dim, dtype=y.dtype)
    for k in range(1, c.nsteps):
        t = c.time(k)
        y = advance(m, history, k)
        _check_finite(m, k, y)
        history.append(t, y)

        if not c.is_checkpoint(k):
            yield StepCompleted(t=t, iteration=k, dt=c.dt, y=y[: m.dim])
            continue

        try:
            q, e = renormalize(m.renormalization, history[k].fundamental)
        except NumericalInstabilityError as exc:
            raise NumericalInstabilityError(
                f"{exc} at t = {t:.5e}", iteration=k, index=exc.index
            ) from exc

        history.replace_fundamental(k, q)

        lsum += np.log(e)
        tlyap = (k + 1) * c.dt

        yield RenormalizationCompleted(
            t=t,
            iteration=k,
            dt=c.dt,
            y=y[: m.dim],
            tlyap=tlyap,
            stretching=e,
            exponents=lsum / tlyap,
            progress=100.0 * (k + 1) / c.nsteps,
        )


# }}}
