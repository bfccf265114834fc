# SPDX-FileCopyrightText: 2025 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass
from functools import singledispatch

import numpy as np

from fraclyap.logging import get_logger
from fraclyap.typing import Array

log = get_logger(__name__)


class NumericalInstabilityError(RuntimeError):
    """An exception raised when the evolution of the tangent system breaks down.

    This is raised for degenerate tangent directions during renormalization
    or for non-finite values in the trajectories.
    """

    def __init__(
        self, message: str, *, iteration: int | None = None, index: int | None = None
    ) -> None:
        super().__init__(message)

        #: Time step at which the instability was detected (if known).
        self.iteration = iteration
        #: Column or variable at which the instability was detected.
        self.index = index

    def __str__(self) -> str:
        msg = super().__str__()
        if self.iteration is None:
            return msg

        return f"[{self.iteration:06d}] {msg}"


# {{{ interface


@dataclass(frozen=True)
class RenormalizationMethod:
    """A method used to orthonormalize the columns of the tangent matrix.

    All methods use the same convention: the columns are processed from left
    to right and the stretching factors (the diagonal of :math:`R` in the
    decomposition :math:`J = Q R`) are strictly positive. Therefore, an
    orthonormal matrix is returned unchanged with unit stretching factors.
    """

    rtol: float = 1.0e-12
    """Relative tolerance used to detect degenerate columns. A column is
    degenerate if its stretching factor is smaller than *rtol* times the
    largest column norm of the input matrix.
    """

    if __debug__:

        def __post_init__(self) -> None:
            if not 0.0 <= self.rtol < 1.0:
                raise ValueError(f"Tolerance must be in [0, 1): {self.rtol}")

    @property
    def name(self) -> str:
        """An identifier for the method."""
        return type(self).__name__


def _check_stretching_factors(m: RenormalizationMethod, J: Array, e: Array) -> None:
    scale = np.max(np.linalg.norm(J, axis=0))

    (degenerate,) = np.nonzero(~np.isfinite(e) | (e <= m.rtol * scale))
    if degenerate.size:
        i = int(degenerate[0])
        raise NumericalInstabilityError(
            f"Degenerate tangent direction in column {i}: norm {e[i]:.5e} "
            f"(matrix scale {scale:.5e})",
            index=i,
        )


@singledispatch
def renormalize(m: RenormalizationMethod, J: Array) -> tuple[Array, Array]:
    """Orthonormalize the columns of the matrix *J* using the method *m*.

    :arg J: a square matrix whose columns are the tangent directions.
    :returns: a tuple ``(Q, E)`` containing the orthonormalized directions and
        the stretching factor of each direction.
    """
    raise NotImplementedError(f"'renormalize' functionality for {type(m).__name__!r}")


# }}}


# {{{ GramSchmidt


@dataclass(frozen=True)
class GramSchmidt(RenormalizationMethod):
    """Orthonormalization using the modified Gram-Schmidt algorithm."""


@renormalize.register(GramSchmidt)
def _renormalize_gram_schmidt(m: GramSchmidt, J: Array) -> tuple[Array, Array]:
    if J.ndim != 2 or J.shape[0] != J.shape[1]:
        raise ValueError(f"Expected a square matrix: got shape {J.shape}")

    if not np.all(np.isfinite(J)):
        raise NumericalInstabilityError("Tangent matrix contains non-finite values")

    n = J.shape[1]
    Q = np.array(J, dtype=np.result_type(J.dtype, np.float64), copy=True)
    e = np.empty(n, dtype=Q.dtype)

    for j in range(n):
        v = Q[:, j]
        for i in range(j):
            v -= (Q[:, i] @ v) * Q[:, i]

        e[j] = np.linalg.norm(v)
        if e[j] > 0:
            v /= e[j]

    _check_stretching_factors(m, J, e)
    return Q, e


# }}}


# {{{ Householder


@dataclass(frozen=True)
class Householder(RenormalizationMethod):
    """Orthonormalization using a Householder-based QR decomposition from
    :func:`scipy.linalg.qr`.

    The signs of the columns are flipped so that the stretching factors are
    positive and the result matches :class:`GramSchmidt` up to round-off.
    """


@renormalize.register(Householder)
def _renormalize_householder(m: Householder, J: Array) -> tuple[Array, Array]:
    if J.ndim != 2 or J.shape[0] != J.shape[1]:
        raise ValueError(f"Expected a square matrix: got shape {J.shape}")

    if not np.all(np.isfinite(J)):
        raise NumericalInstabilityError("Tangent matrix contains non-finite values")

    import scipy.linalg as sla

    Q, R = sla.qr(J, mode="economic", check_finite=False)

    r = np.diag(R)
    sign = np.where(r < 0, -1.0, 1.0)
    e = sign * r

    _check_stretching_factors(m, J, e)
    return Q * sign, e


# }}}


def make_renormalization_method_from_name(
    name: str, **kwargs: float
) -> RenormalizationMethod:
    """
    :arg name: one of ``"gs"`` (or ``"gram_schmidt"``) and ``"householder"``.
    :arg kwargs: additional arguments passed to the method.
    """
    key = name.lower().replace("-", "_")
    if key in {"gs", "gram_schmidt"}:
        return GramSchmidt(**kwargs)

    if key in {"householder", "qr"}:
        return Householder(**kwargs)

    raise ValueError(f"Unknown renormalization method: {name!r}")
