# SPDX-FileCopyrightText: 2024 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import pathlib

import numpy as np
import pytest

from fraclyap.gallery import ForcedDuffing, Function, LinearSystem
from fraclyap.logging import get_logger
from fraclyap.typing import Array

TEST_FILENAME = pathlib.Path(__file__)
TEST_DIRECTORY = TEST_FILENAME.parent

log = get_logger(f"fraclyap.{TEST_FILENAME.stem}")


def finite_difference_jacobian(
    func: Function, t: float, y: Array, *, eps: float = 1.0e-6
) -> Array:
    jac = np.empty((y.size, y.size))
    for j in range(y.size):
        dy = np.zeros_like(y)
        dy[j] = eps

        jac[:, j] = (func.source(t, y + dy) - func.source(t, y - dy)) / (2 * eps)

    return jac


# {{{ test_gallery_jacobian


@pytest.mark.parametrize(
    "func",
    [
        ForcedDuffing(c=0.3, beta=-0.1, amplitude=0.255, omega=1.2),
        ForcedDuffing(c=0.1, beta=0.5, amplitude=1.0, omega=0.5),
        LinearSystem(A=np.array([[-1.0, 2.0], [0.5, -3.0]])),
    ],
)
def test_gallery_jacobian(func: Function) -> None:
    rng = np.random.default_rng(seed=42)

    for _ in range(8):
        t = rng.uniform(0.0, 10.0)
        y = rng.uniform(-2.0, 2.0, size=func.dim)

        f = func.source(t, y)
        assert f.shape == (func.dim,)

        jac = func.source_jac(t, y)
        jac_ref = finite_difference_jacobian(func, t, y)
        error = np.max(np.abs(jac - jac_ref))
        log.info("%s: error %.5e", type(func).__name__, error)

        assert jac.shape == (func.dim, func.dim)
        assert error < 1.0e-8


# }}}


# {{{ test_forced_duffing


def test_forced_duffing() -> None:
    func = ForcedDuffing(c=0.3, beta=-0.1, amplitude=0.255, omega=1.2)
    assert func.dim == 4

    # the forcing phase does not depend on the state
    y = np.array([0.5, -0.2, 0.1, 3.0])
    assert func.source(0.0, y)[3] == 1.0
    assert np.all(func.source_jac(0.0, y)[3] == 0.0)

    # x and z are both driven by the velocity
    f = func.source(0.0, y)
    assert f[0] == f[2] == y[1]

    assert ForcedDuffing.orders(0.8)[2] == pytest.approx(0.2)
    assert ForcedDuffing.orders(0.0) == (1.0, 1.0, 1.0, 1.0)

    with pytest.raises(ValueError, match="damping order"):
        ForcedDuffing.orders(1.0)


# }}}


# {{{ test_linear_system


def test_linear_system() -> None:
    func = LinearSystem.from_diagonal(np.array([-1.0, 0.5, -2.0]))
    assert func.dim == 3
    assert np.array_equal(func.exponents(), [0.5, -1.0, -2.0])

    y = np.array([1.0, 2.0, 3.0])
    assert np.array_equal(func.source(0.0, y), [-1.0, 1.0, -6.0])

    with pytest.raises(ValueError, match="square"):
        LinearSystem(A=np.ones((2, 3)))


# }}}


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        exec(sys.argv[1])
    else:
        pytest.main([__file__])
