# SPDX-FileCopyrightText: 2023 Alexandru Fikl <alexfikl@gmail.com>
# SPDX-License-Identifier: MIT

from __future__ import annotations

import os
import time
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from fraclyap.logging import get_logger
from fraclyap.typing import PathLike

log = get_logger(__name__)


# {{{ environment


# fmt: off
BOOLEAN_STATES = {
    1: True, "1": True, "yes": True, "true": True, "on": True, "y": True,
    0: False, "0": False, "no": False, "false": False, "off": False, "n": False,
}
# fmt: on


def get_environ_bool(name: str) -> bool:
    value = os.environ.get(name)
    return BOOLEAN_STATES.get(value.lower(), False) if value else False


# }}}


# {{{ matplotlib helpers


def check_usetex(*, s: bool) -> bool:
    try:
        import matplotlib
    except ImportError:
        return False

    try:
        return bool(matplotlib.checkdep_usetex(s))  # type: ignore[attr-defined,unused-ignore]
    except AttributeError:
        import shutil

        return all(shutil.which(name) for name in ("tex", "dvipng", "gs"))


def set_recommended_matplotlib(
    *,
    dark: bool | None = None,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> None:
    """Set :mod:`matplotlib` parameters for the trajectory and exponent plots.

    `SciencePlots <https://github.com/garrettj403/SciencePlots>`__ is used, if
    available, and LaTeX labels are only enabled if LaTeX is installed.

    :arg dark: if *True*, a dark theme is used. If *None*, this takes its value
        from the ``FRACLYAP_DARK`` boolean environment variable.
    :arg overrides: a mapping of parameter groups to override the defaults.
    """
    try:
        import matplotlib.pyplot as mp
    except ImportError:
        return

    import matplotlib as mpl

    mpl.rcParams.update(mpl.rcParamsDefault)

    if dark is None:
        dark = get_environ_bool("FRACLYAP_DARK")

    savefig_format = os.environ.get(
        "FRACLYAP_SAVEFIG", mp.rcParams["savefig.format"]
    ).lower()
    use_tex = "GITHUB_REPOSITORY" not in os.environ and check_usetex(s=True)

    prop_cycle = mp.rcParams["axes.prop_cycle"]
    with suppress(ImportError):
        import scienceplots  # noqa: F401

        mp.style.use(["science", "ieee"])

    params: dict[str, dict[str, Any]] = {
        "figure": {"figsize": (8, 8), "dpi": 300, "constrained_layout.use": True},
        "savefig": {"format": savefig_format},
        "text": {"usetex": use_tex},
        "legend": {"fontsize": 20},
        "lines": {"linewidth": 2},
        "axes": {
            "labelsize": 28,
            "grid": True,
            "grid.axis": "both",
            "prop_cycle": prop_cycle,
        },
        "xtick": {"labelsize": 20},
        "ytick": {"labelsize": 20},
    }

    if dark:
        black, gray = "111111", "28313D"
        params["text"]["color"] = "white"
        params["axes"].update({
            "labelcolor": "white",
            "facecolor": gray,
            "edgecolor": "white",
        })
        params["xtick"]["color"] = "white"
        params["ytick"]["color"] = "white"
        params["figure"].update({"facecolor": black, "edgecolor": black})
        params["savefig"].update({"facecolor": black, "edgecolor": black})

    for group, values in {**params, **(overrides or {})}.items():
        mp.rc(group, **values)


@contextmanager
def figure(filename: PathLike | None = None) -> Iterator[Any]:
    """A context manager for a single-axis :class:`matplotlib.figure.Figure`.

    On exit, the figure is saved to *filename* (using the default
    ``savefig.format`` if it has no extension) or shown if no *filename* is
    given, and then closed.
    """
    import pathlib

    import matplotlib.pyplot as mp

    fig = mp.figure()
    fig.add_subplot(1, 1, 1)

    try:
        yield fig
    finally:
        if filename is None:
            mp.show(block=True)  # type: ignore[no-untyped-call,unused-ignore]
        else:
            path = pathlib.Path(filename)
            if not path.suffix:
                path = path.with_suffix(f".{mp.rcParams['savefig.format']}")

            log.info("Saving '%s'", path)
            fig.savefig(path, bbox_inches="tight")

        mp.close(fig)


# }}}


# {{{ timing


@dataclass
class TicTocTimer:
    """A simple timer that tries to copy MATLAB's ``tic`` and ``toc`` functions.

    It also keeps running statistics of all the :meth:`toc` calls, e.g. to
    report the average time between two renormalizations.
    """

    t_wall_start: float = field(default=0.0, init=False)
    t_wall: float = field(default=0.0, init=False)

    n_calls: int = field(default=0, init=False)
    t_avg: float = field(default=0.0, init=False)
    t_sqr: float = field(default=0.0, init=False)

    def tic(self) -> None:
        self.t_wall = 0.0
        self.t_wall_start = time.perf_counter()

    def toc(self) -> float:
        self.t_wall = time.perf_counter() - self.t_wall_start

        # Welford update of the mean and variance
        self.n_calls += 1
        delta = self.t_wall - self.t_avg
        self.t_avg += delta / self.n_calls
        self.t_sqr += delta * (self.t_wall - self.t_avg)

        return self.t_wall

    def stats(self) -> str:
        """Aggregate statistics across multiple calls to :meth:`toc`."""
        t_std = np.sqrt(self.t_sqr / (self.n_calls - 1)) if self.n_calls > 1 else 0.0
        return f"avg {self.t_avg:.3f}s ± {t_std:.3f}s ({self.n_calls} calls)"

    def short(self) -> str:
        """A shorter string for the last :meth:`tic`-:meth:`toc` cycle."""
        return f"wall {self.t_wall:.5f}s"


# }}}
