# SPDX-FileCopyrightText: 2024 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import numpy as np

from fraclyap.kernels import KernelTable
from fraclyap.typing import Array


def memory_term(h: Array, c: Array, k: int) -> float:
    r"""Evaluate the Grünwald-Letnikov memory term at the step *k*.

    .. math::

        M_k = \sum_{j = 1}^{k} c_j h_{k - j},

    i.e. the weight :math:`c_j` multiplies the value :math:`j` steps in the
    past. Only ``h[:k]`` and ``c[:k]`` are used, so the result does not depend
    on any values at or after *k*. The full history is always used.

    :arg h: an array of shape ``(n,)`` with the history of a single variable.
    :arg c: weights from :func:`~fraclyap.kernels.grunwald_letnikov_weights`.
    :arg k: (0-based) index of the step that is computed, :math:`k \ge 1`.
    """
    if not 1 <= k <= min(h.size, c.size):
        raise IndexError(
            f"Memory index out of range: 1 <= {k} <= {min(h.size, c.size)}"
        )

    return float(np.dot(c[:k], h[k - 1 :: -1]))


def memory_terms(storage: Array, table: KernelTable, k: int) -> Array:
    """Evaluate :func:`memory_term` for every column of *storage*.

    The columns are grouped by fractional order (see
    :meth:`~fraclyap.kernels.KernelTable.groups`), so this performs one
    matrix-vector product per distinct order.

    :arg storage: an array of shape ``(n, m)`` containing the history of all
        the variables (state and tangent matrix) for at least *k* steps.
    """
    if not 1 <= k <= min(storage.shape[0], table.nweights):
        raise IndexError(
            f"Memory index out of range: 1 <= {k} <= {table.nweights}"
        )

    tangent = storage.shape[1] > len(table.orders)
    past = storage[k - 1 :: -1]

    result = np.empty(storage.shape[1], dtype=storage.dtype)
    for c, columns in table.groups(tangent=tangent):
        result[columns] = c[:k] @ past[:, columns]

    return result
