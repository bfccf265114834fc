# SPDX-FileCopyrightText: 2023-2024 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import numpy as np

PathLike = os.PathLike[str] | str
"""A union of types supported as paths."""


# {{{ numpy


if TYPE_CHECKING:
    Array = np.ndarray[Any, Any]
else:
    Array = np.ndarray
    """Array type alias for :class:`numpy.ndarray`."""


# }}}


# {{{ callable protocols


@runtime_checkable
class StateFunction(Protocol):
    r"""A generic callable for right-hand side functions
    :math:`\mathbf{f}(t, \mathbf{y})`.

    .. automethod:: __call__
    """

    def __call__(self, t: float, y: Array, /) -> Array:
        """
        :arg t: time at which to evaluate the function.
        :arg y: state vector value at which to evaluate the function.
        """


@runtime_checkable
class JacobianFunction(Protocol):
    r"""A callable for the Jacobian :math:`\mathbf{J}_{ij} = \partial f_i /
    \partial y_j` of a :class:`StateFunction`.

    .. automethod:: __call__
    """

    def __call__(self, t: float, y: Array, /) -> Array:
        """
        :arg t: time at which to evaluate the Jacobian.
        :arg y: state vector value at which to evaluate the Jacobian.
        :returns: an array of shape ``(n, n)``, where *n* is the size of *y*.
        """


# }}}
