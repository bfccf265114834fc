# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from functools import cached_property

import numpy as np

from fraclyap.logging import get_logger
from fraclyap.typing import Array

log = get_logger(__name__)


# {{{ Grünwald-Letnikov weights


def grunwald_letnikov_weights(alpha: float, n: int) -> Array:
    r"""Construct the memory weights of the Grünwald-Letnikov derivative.

    The weights are given by the recurrence

    .. math::

        c_1 = 1 - (1 + \alpha), \qquad
        c_j = \left(1 - \frac{1 + \alpha}{j}\right) c_{j - 1},

    for :math:`j \in \{2, \dots, n\}`, i.e. :math:`c_j = (-1)^j \binom{\alpha}{j}`
    without the leading :math:`c_0 = 1`. The recurrence is used directly instead
    of the closed form. For :math:`\alpha = 1`, the weights are
    :math:`(-1, 0, 0, \dots)` and the scheme reduces to the forward Euler method.

    :arg alpha: order of the derivative.
    :arg n: number of weights, usually the number of time steps.
    :returns: an array of shape ``(n,)``, where ``c[j - 1]`` is the weight of
        the value :math:`j` steps in the past.
    """
    if alpha < 0:
        raise ValueError(f"Negative orders are not supported: {alpha}")

    if n < 1:
        raise ValueError(f"Number of weights must be positive: {n}")

    c = np.empty(n)

    cprev = 1.0
    for j in range(1, n + 1):
        cprev = c[j - 1] = (1.0 - (1.0 + alpha) / j) * cprev

    return c


def grunwald_letnikov_binomial_weights(alpha: float, n: int) -> Array:
    r"""Construct the same weights as :func:`grunwald_letnikov_weights` using
    the closed form :math:`c_j = (-1)^j \binom{\alpha}{j}`.

    This is mainly meant for testing, since the generalized binomial
    coefficients can lose accuracy for large :math:`j`.
    """
    if alpha < 0:
        raise ValueError(f"Negative orders are not supported: {alpha}")

    if n < 1:
        raise ValueError(f"Number of weights must be positive: {n}")

    from scipy.special import binom

    j = np.arange(1, n + 1)
    return np.array((-1.0) ** j * binom(alpha, j))


# }}}


# {{{ KernelTable


@dataclass(frozen=True)
class KernelTable:
    """A table of Grünwald-Letnikov weights for a system with (possibly)
    different orders for each equation.

    The weights are computed once for each distinct order and are shared by
    all the equations of that order. They are marked as read-only.
    """

    orders: tuple[float, ...]
    """Fractional order of each equation in the system."""
    weights: dict[float, Array] = field(repr=False)
    """A mapping from each distinct order to its weights."""

    @property
    def nweights(self) -> int:
        """Number of weights stored for each order."""
        return next(iter(self.weights.values())).size

    def __getitem__(self, i: int) -> Array:
        """
        :returns: the weights used by the *i*-th equation.
        """
        return self.weights[self.orders[i]]

    def groups(self, *, tangent: bool = True) -> tuple[tuple[Array, Array], ...]:
        """Group columns of a trajectory by order.

        The columns are laid out as in :class:`~fraclyap.history.LyapunovHistory`:
        the first ``len(orders)`` columns are the state and, if *tangent* is
        *True*, the following columns are the rows of the tangent matrix.

        :returns: tuples ``(weights, columns)`` for each distinct order.
        """
        return self._tangent_groups if tangent else self._state_groups

    @cached_property
    def _state_groups(self) -> tuple[tuple[Array, Array], ...]:
        return tuple(self._make_groups(tangent=False))

    @cached_property
    def _tangent_groups(self) -> tuple[tuple[Array, Array], ...]:
        return tuple(self._make_groups(tangent=True))

    def _make_groups(self, *, tangent: bool) -> Iterator[tuple[Array, Array]]:
        d = len(self.orders)
        for alpha, c in self.weights.items():
            (rows,) = np.nonzero(np.array(self.orders) == alpha)
            columns = [rows]
            if tangent:
                columns.extend(d + rows * d + j for j in range(d))

            yield c, np.sort(np.hstack(columns))


def make_kernel_table(orders: Sequence[float], n: int) -> KernelTable:
    """Construct a :class:`KernelTable` for the given *orders*.

    :arg n: number of weights for each order (see
        :func:`grunwald_letnikov_weights`).
    """
    weights = {}
    for order in orders:
        alpha = float(order)
        if alpha in weights:
            continue

        c = grunwald_letnikov_weights(alpha, n)
        c.flags.writeable = False
        weights[alpha] = c

    log.debug("Computed %d kernels for orders %s", len(weights), tuple(orders))
    return KernelTable(orders=tuple(float(alpha) for alpha in orders), weights=weights)


# }}}
