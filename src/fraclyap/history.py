# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import Any, Generic, TypeVar

import numpy as np

from fraclyap.logging import get_logger
from fraclyap.typing import Array

log = get_logger(__name__)


# {{{ interface


@dataclass(frozen=True)
class State:
    """A class the holds the values of all the variables at a time step."""

    def __iter__(self) -> Iterator[Any]:
        for f in fields(self):
            yield getattr(self, f.name)


#: Invariant type variable bound to :class:`State`.
T = TypeVar("T", bound=State)


class History(ABC, Generic[T]):
    """A class handling the history of an evolution equation.

    It essentially acts as a queue from which the items cannot be removed. For
    inspiration check out :class:`collections.deque`.

    .. automethod:: __bool__
    .. automethod:: __len__
    .. automethod:: __getitem__
    """

    @abstractmethod
    def __bool__(self) -> bool:
        """
        :returns: *False* if the history is empty and *True* otherwise.
        """

    @abstractmethod
    def __len__(self) -> int:
        """
        :returns: the number of stored states.
        """

    @abstractmethod
    def __getitem__(self, k: int) -> T:
        """Load a state from the history.

        :returns: a compound :class:`State` from the *k*-th time step.
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove all items from the history."""

    @abstractmethod
    def append(self, t: float, y: Array) -> None:
        """Add a new time step to the current history."""


@dataclass(frozen=True)
class InMemoryHistory(History[T]):
    """A history with contiguous in-memory storage.

    This storage automatically grows when it exceeds its capacity and allows
    for easy retrieval of specific time steps. Note that, to resize the arrays
    no external references to them must exist. For example,
    ``ts = history.ts[:n]`` will create such a reference and a copy should be
    made instead if absolutely necessary.
    """

    #: An array of shape ``(n, ...)`` containing the stored values.
    storage: Array = field(repr=False)
    #: An array of shape ``(n,)`` containing the fixed time steps.
    ts: Array = field(repr=False)

    filled: int = field(default=0, repr=False, init=False)

    @property
    def capacity(self) -> int:
        """The maximum size currently available for storage."""
        return self.ts.size

    @property
    def current_time(self) -> float:
        """The current time instance stored in the history."""
        return float(self.ts[self.filled - 1])

    def __bool__(self) -> bool:
        return self.filled > 0

    def __len__(self) -> int:
        return self.filled

    def clear(self) -> None:
        object.__setattr__(self, "filled", 0)

    def resize(self, new_size: int) -> None:
        """Forcefully resize the storage of the history.

        :arg new_size: the new desired size.
        """
        # NOTE: mostly following the growth pattern of python lists
        # https://github.com/python/cpython/blob/76bef3832bae64664882e27ecb6f89800a12cf43/Objects/listobject.c#L73

        new_size = new_size + (new_size >> 3) + (3 if new_size < 9 else 6)
        self.storage.resize((new_size, *self.storage.shape[1:]))
        self.ts.resize((new_size,))

    def append(self, t: float, y: Array) -> None:
        k = self.filled
        if k == self.capacity:
            self.resize(k + 1)

        self.storage[k] = y
        self.ts[k] = t

        object.__setattr__(self, "filled", self.filled + 1)


# }}}


# {{{ LyapunovHistory


@dataclass(frozen=True)
class LyapunovState(State):
    """The state of the augmented system at a single time step."""

    #: Time of the evaluation.
    t: float
    #: State variables of shape ``(d,)``.
    y: Array
    #: Tangent (fundamental) matrix of shape ``(d, d)``.
    fundamental: Array


@dataclass(frozen=True)
class LyapunovHistory(InMemoryHistory[LyapunovState]):
    r"""A history for the state and tangent matrix trajectories.

    Each row of :attr:`storage` holds the :math:`d` state variables followed
    by the :math:`d^2` entries of the tangent matrix in row-major order, i.e.
    the entry :math:`(i, j)` is stored in column :math:`d + i d + j`. Rows
    are written once by :meth:`append`; the only exception is
    :meth:`replace_fundamental`, used when the tangent basis is renormalized.
    """

    #: Dimension of the system.
    dim: int = 1

    @property
    def ys(self) -> Array:
        """A view of the state trajectory of shape ``(n, d)``."""
        return self.storage[: self.filled, : self.dim]

    @property
    def fundamentals(self) -> Array:
        """A view of the tangent matrix trajectory of shape ``(n, d, d)``."""
        d = self.dim
        return self.storage[: self.filled, d:].reshape(-1, d, d)

    def __getitem__(self, k: int) -> LyapunovState:
        if k == -1:
            k = self.filled - 1

        if not 0 <= k < self.filled:
            raise IndexError(f"History index out of range: 0 <= {k} < {self.filled}")

        d = self.dim
        return LyapunovState(
            float(self.ts[k]),
            self.storage[k, :d],
            self.storage[k, d:].reshape(d, d),
        )

    def append(self, t: float, y: Array) -> None:
        """Add a new time step.

        :arg y: an array of size ``d + d^2`` containing the state and the
            flattened tangent matrix.
        """
        if y.shape != (self.dim * (self.dim + 1),):
            raise ValueError(
                f"Expected array of shape {(self.dim * (self.dim + 1),)}: "
                f"got {y.shape}"
            )

        super().append(t, y)

    def replace_fundamental(self, k: int, fundamental: Array) -> None:
        """Overwrite the tangent matrix at the time step *k*."""
        if not 0 <= k < self.filled:
            raise IndexError(f"History index out of range: 0 <= {k} < {self.filled}")

        d = self.dim
        self.storage[k, d:] = fundamental.reshape(-1)

    @classmethod
    def empty_like(cls, y: Array, n: int = 512) -> LyapunovHistory:
        """Construct a :class:`LyapunovHistory` for the state *y* of shape
        ``(d,)`` that can hold *n* time steps without resizing.
        """
        if y.ndim != 1:
            raise ValueError(f"Only 1d state arrays are supported: {y.shape}")

        d = y.size
        dtype = np.result_type(y.dtype, np.float64)
        return cls(
            storage=np.empty((n, d * (d + 1)), dtype=dtype),
            ts=np.empty(n, dtype=dtype),
            dim=d,
        )


# }}}
