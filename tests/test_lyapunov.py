# SPDX-FileCopyrightText: 2025 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import pathlib

import numpy as np
import pytest

from fraclyap.controller import make_fixed_controller
from fraclyap.gallery import ForcedDuffing, LinearSystem
from fraclyap.logging import get_logger
from fraclyap.lyapunov import LyapunovExponents, lyapunov_exponents
from fraclyap.renormalization import GramSchmidt, Householder, RenormalizationMethod
from fraclyap.stepping import GrunwaldLetnikovMethod, Sweep
from fraclyap.utils import get_environ_bool

TEST_FILENAME = pathlib.Path(__file__)
TEST_DIRECTORY = TEST_FILENAME.parent
ENABLE_VISUAL = get_environ_bool("ENABLE_VISUAL")

log = get_logger(f"fraclyap.{TEST_FILENAME.stem}")


# {{{ test_lyapunov_linear


@pytest.mark.parametrize("renormalization", [GramSchmidt(), Householder()])
def test_lyapunov_linear(renormalization: RenormalizationMethod) -> None:
    func = LinearSystem.from_diagonal(np.array([-0.5, -1.0, -2.0]))
    dt = 1.0e-3

    m = GrunwaldLetnikovMethod(
        orders=(1.0, 1.0, 1.0),
        control=make_fixed_controller(dt, 1.0e-2, 1.0),
        source=func.source,
        source_jac=func.source_jac,
        y0=np.array([1.0, 1.0, 1.0]),
        renormalization=renormalization,
    )
    result = lyapunov_exponents(m, log_per_checkpoint=25)
    lyap = result.lyap

    assert len(lyap) == m.control.ncheckpoints == 100
    assert np.allclose(lyap.t, 1.0e-2 * np.arange(1, 101), atol=1.0e-12, rtol=0.0)
    assert lyap.exponents.shape == (100, 3)

    # forward Euler grows the tangent directions by (1 + h a) at each step
    # and the first renormalization only sees nrenorm - 1 steps
    nsteps = m.control.nsteps
    le_ref = (nsteps - 1) * np.log1p(dt * np.diag(func.A)) / (nsteps * dt)
    error = np.max(np.abs(result.exponents - le_ref))
    log.info("%s: LE %s error %.5e", renormalization.name, result.exponents, error)
    assert error < 1.0e-10

    # estimates are close to the exact exponents
    le_exact = func.exponents()
    assert np.max(np.abs(result.exponents - le_exact)) < 1.0e-2

    # and they converge monotonically for the leading exponent
    error_lead = np.abs(lyap.exponents[:, 0] - le_exact[0])
    assert np.all(np.diff(error_lead) < 0)

    # trajectories are kept for all the time steps
    assert result.t.shape == (nsteps,)
    assert result.y.shape == (3, nsteps)
    assert result.fundamental.shape == (nsteps, 3, 3)
    assert np.allclose(result.y[:, -1], (1.0 + dt * np.diag(func.A)) ** (nsteps - 1))


# }}}


# {{{ test_lyapunov_fractional


def test_lyapunov_fractional() -> None:
    func = LinearSystem.from_diagonal(np.array([-1.0]))

    m = GrunwaldLetnikovMethod(
        orders=(0.8,),
        control=make_fixed_controller(1.0e-2, 1.0e-1, 5.0),
        source=func.source,
        source_jac=func.source_jac,
        y0=np.array([1.0]),
    )
    result = lyapunov_exponents(m, quiet=True)
    log.info("LE %s", result.exponents)

    # fractional relaxation is stable
    assert np.all(result.lyap.exponents < 0)
    assert np.all(result.fundamental > 0)
    assert np.all(result.y[0] > 0)
    assert result.y[0, -1] < result.y[0, 0]

    # stop early
    result = lyapunov_exponents(m, quiet=True, maxcheckpoints=3)
    assert len(result.lyap) == 3
    assert result.t.size == 3 * m.control.nrenorm
    assert result.y.shape == (1, 3 * m.control.nrenorm)

    with pytest.raises(ValueError, match="maxcheckpoints"):
        lyapunov_exponents(m, maxcheckpoints=0)

    with pytest.raises(ValueError, match="log_per_checkpoint"):
        lyapunov_exponents(m, log_per_checkpoint=0)


# }}}


# {{{ test_lyapunov_checkpoints


@pytest.mark.parametrize(("dt_norm", "ncheckpoints"), [(0.1, 9), (0.2, 5), (0.3, 3)])
def test_lyapunov_checkpoints(dt_norm: float, ncheckpoints: int) -> None:
    from fraclyap import lyapunov

    func = LinearSystem.from_diagonal(np.array([-1.0]))
    result = lyapunov(
        func.source,
        func.source_jac,
        np.array([1.0]),
        (1.0,),
        dt=0.1,
        dt_norm=dt_norm,
        tfinal=1.0,
        quiet=True,
    )

    # the initial condition is never renormalized
    assert len(result.lyap) == ncheckpoints
    assert result.lyap.t[0] > dt_norm / 2

    # logging and early stopping are passed to the driver
    result = lyapunov(
        func.source,
        func.source_jac,
        np.array([1.0]),
        (1.0,),
        dt=0.1,
        dt_norm=dt_norm,
        tfinal=1.0,
        log_per_checkpoint=2,
        maxcheckpoints=2,
    )
    assert len(result.lyap) == 2

    with pytest.raises(ValueError, match="log_per_checkpoint"):
        lyapunov(
            func.source,
            func.source_jac,
            np.array([1.0]),
            (1.0,),
            dt=0.1,
            dt_norm=dt_norm,
            tfinal=1.0,
            log_per_checkpoint=0,
        )


# }}}


# {{{ test_lyapunov_exponents_record


def test_lyapunov_exponents_record() -> None:
    lyap = LyapunovExponents(dim=2)
    assert not lyap
    assert lyap.t.shape == (0,)
    assert lyap.exponents.shape == (0, 2)

    with pytest.raises(IndexError):
        _ = lyap.final

    with pytest.raises(ValueError, match="shape"):
        lyap.append(0.1, np.zeros(3))

    le = np.array([0.5, -1.0])
    lyap.append(0.1, le)
    lyap.append(0.2, 2.0 * le)

    # values are copied and read-only
    le[0] = 10.0
    assert len(lyap) == 2
    assert np.array_equal(lyap.final, [1.0, -2.0])
    assert not lyap.final.flags.writeable

    t, exponents = lyap[0]
    assert t == 0.1
    assert np.array_equal(exponents, [0.5, -1.0])
    assert np.array_equal(lyap.t, [0.1, 0.2])


# }}}


# {{{ test_lyapunov_duffing


@pytest.mark.parametrize("renormalization", ["gs", "householder"])
def test_lyapunov_duffing(renormalization: str) -> None:
    from fraclyap import lyapunov

    func = ForcedDuffing(c=0.3, beta=-0.1, amplitude=0.255, omega=1.2)
    result = lyapunov(
        func.source,
        func.source_jac,
        np.zeros(4),
        ForcedDuffing.orders(0.8),
        dt=1.0e-3,
        dt_norm=1.0e-2,
        tfinal=2.0,
        sweep=Sweep.Sequential,
        renormalization=renormalization,
        quiet=True,
    )
    log.info("LE %s", result.exponents)

    assert result.t.shape == (2000,)
    assert result.y.shape == (4, 2000)
    assert len(result.lyap) == 200
    assert np.all(np.isfinite(result.lyap.exponents))

    # the forcing phase has a zero Jacobian row, so it remains a unit direction
    # after the first renormalization
    assert np.allclose(result.fundamental[9, 3], [0.0, 0.0, 0.0, 1.0], atol=1.0e-14)

    if not ENABLE_VISUAL:
        return

    from fraclyap import lyapplot

    lyapplot(result, TEST_DIRECTORY / f"test_lyapunov_duffing_{renormalization}")


def test_lyapunov_invalid() -> None:
    from fraclyap import ConfigurationError, lyapunov

    func = ForcedDuffing(c=0.3, beta=-0.1, amplitude=0.255, omega=1.2)
    with pytest.raises(ValueError, match="Unknown"):
        lyapunov(
            func.source,
            func.source_jac,
            np.zeros(4),
            ForcedDuffing.orders(0.8),
            dt=1.0e-3,
            dt_norm=1.0e-2,
            tfinal=1.0,
            renormalization="svd",
        )

    with pytest.raises(ConfigurationError, match="integer multiple"):
        lyapunov(
            func.source,
            func.source_jac,
            np.zeros(4),
            ForcedDuffing.orders(0.8),
            dt=1.0e-3,
            dt_norm=1.5e-3,
            tfinal=1.0,
        )

    # fails before taking any step if there is no renormalization in the run
    with pytest.raises(ConfigurationError, match="longer than the time interval"):
        lyapunov(
            func.source,
            func.source_jac,
            np.zeros(4),
            ForcedDuffing.orders(0.8),
            dt=0.1,
            dt_norm=2.0,
            tfinal=1.0,
        )


# }}}


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        exec(sys.argv[1])
    else:
        pytest.main([__file__])
