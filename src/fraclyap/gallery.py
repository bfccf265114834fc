# SPDX-FileCopyrightText: 2024 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from fraclyap.logging import get_logger
from fraclyap.typing import Array

log = get_logger(__name__)


@dataclass(frozen=True)
class Function(ABC):
    r"""Abstract class for right-hand side functions of differential equations

    .. math::

        D^q[\mathbf{y}](t) = \mathbf{f}(t, \mathbf{y}(t)),

    The right-hand side term is given by :meth:`source` and its Jacobian with
    respect to the second argument is given by :meth:`source_jac`.
    """

    @property
    @abstractmethod
    def dim(self) -> int:
        """Dimension of the system."""

    @abstractmethod
    def source(self, t: float, y: Array) -> Array:
        """Evaluates the right-hand side of the fractional equation."""

    @abstractmethod
    def source_jac(self, t: float, y: Array) -> Array:
        """Evaluates the Jacobian of :meth:`source` with respect to *y*."""


# {{{ Duffing


@dataclass(frozen=True)
class ForcedDuffing(Function):
    r"""Implements the right-hand side of a forced Duffing oscillator with a
    fractional damping term, written as an autonomous system (see Section 4.1
    from [Li2023]_).

    .. math::

        \begin{aligned}
        D^{q_1}[x](t) & = y, \\
        D^{q_2}[y](t) & = A \cos \omega u - c y + x - x^3 - \beta z, \\
        D^{q_3}[z](t) & = y, \\
        D^{q_4}[u](t) & = 1.
        \end{aligned}

    The variable :math:`u` is the phase of the forcing, so its row in the
    Jacobian is zero. The variable :math:`z` is a fractional integral of order
    :math:`p` of :math:`y` when :math:`q_3 = 1 - p`.
    """

    c: float
    """Linear damping coefficient."""
    beta: float
    """Coefficient of the fractional damping term."""
    amplitude: float
    """Forcing amplitude."""
    omega: float
    """Angular velocity of the forcing."""

    @property
    def dim(self) -> int:
        return 4

    def source(self, t: float, y: Array) -> Array:
        x, v, z, u = y
        return np.array([
            v,
            self.amplitude * np.cos(self.omega * u)
            - self.c * v
            + x
            - x**3
            - self.beta * z,
            v,
            1.0,
        ])

    def source_jac(self, t: float, y: Array) -> Array:
        x, _, _, u = y
        return np.array([
            [0.0, 1.0, 0.0, 0.0],
            [
                1.0 - 3.0 * x**2,
                -self.c,
                -self.beta,
                -self.omega * self.amplitude * np.sin(self.omega * u),
            ],
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 0.0],
        ])

    @classmethod
    def orders(cls, p: float) -> tuple[float, float, float, float]:
        """Fractional orders of the system for a fractional damping of order *p*."""
        if not 0.0 <= p < 1.0:
            raise ValueError(f"Fractional damping order must be in [0, 1): {p}")

        return (1.0, 1.0, 1.0 - p, 1.0)


# }}}


# {{{ Linear


@dataclass(frozen=True)
class LinearSystem(Function):
    r"""Implements the right-hand side of a linear system

    .. math::

        D^q[\mathbf{y}](t) = \mathbf{A} \mathbf{y}.

    For :math:`q = 1` and a normal matrix :math:`\mathbf{A}`, the Lyapunov
    exponents are the real parts of the eigenvalues of :math:`\mathbf{A}`.
    """

    A: Array
    """A square matrix defining the system."""

    if __debug__:

        def __post_init__(self) -> None:
            if self.A.ndim != 2 or self.A.shape[0] != self.A.shape[1]:
                raise ValueError(f"Expected a square matrix: got shape {self.A.shape}")

    @classmethod
    def from_diagonal(cls, d: Array) -> LinearSystem:
        """Construct a diagonal system with the entries *d*."""
        return cls(A=np.diag(np.asarray(d, dtype=np.float64)))

    @property
    def dim(self) -> int:
        return self.A.shape[0]

    def source(self, t: float, y: Array) -> Array:
        return np.array(self.A @ y)

    def source_jac(self, t: float, y: Array) -> Array:
        return self.A

    def exponents(self) -> Array:
        """Exact Lyapunov exponents for an integer-order system (in decreasing
        order), valid when :attr:`A` is a normal matrix.
        """
        return np.sort(np.linalg.eigvals(self.A).real)[::-1]


# }}}
