# SPDX-FileCopyrightText: 2025 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

import numpy as np

from fraclyap.gallery import ForcedDuffing
from fraclyap.logging import get_logger

log = get_logger("duffing")

# {{{ parameters

# NOTE: parameters taken from Section 4.1 in https://doi.org/10.1016/j.chaos.2023.113167
func = ForcedDuffing(c=0.3, beta=-0.1, amplitude=0.255, omega=1.2)
# order of the fractional damping term
p = 0.8

dt = 1.0e-3
dt_norm = 10 * dt
tfinal = 300.0
y0 = np.zeros(func.dim)

# }}}


# {{{ solve

from fraclyap.controller import make_fixed_controller
from fraclyap.lyapunov import lyapunov_exponents
from fraclyap.stepping import GrunwaldLetnikovMethod, Sweep

stepper = GrunwaldLetnikovMethod(
    orders=ForcedDuffing.orders(p),
    control=make_fixed_controller(dt, dt_norm, tfinal),
    source=func.source,
    source_jac=func.source_jac,
    y0=y0,
    sweep=Sweep.Sequential,
)
log.info("Running %s with %d steps", stepper.name, stepper.control.nsteps)

result = lyapunov_exponents(stepper, log_per_checkpoint=100)

# }}}


# {{{ plot

try:
    import matplotlib  # noqa: F401
except ImportError as exc:
    raise SystemExit(0) from exc

from fraclyap import lyapplot

lyapplot(result, "duffing-lyapunov", ylabel="x")

# }}}
