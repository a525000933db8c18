"""
cruisempc Command Line
======================

Runs the cruise control demonstration and prints one telemetry line per
tick::

    $ cruisempc --v-ref 100 --ticks 200
    Time | Velocity | Control Input
    0.0 s |   0.72 km/h |  3000.0 N
    ...
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import (
    DEFAULT_DT,
    DEFAULT_HORIZON,
    DEFAULT_MASS,
    DEFAULT_TICKS,
    DEFAULT_U_MAX,
    DEFAULT_U_MIN,
    HorizonSpec,
    Method,
    SolverOptions,
)
from .exceptions import ConfigurationError, InvalidInputError, SolveFailure
from .mpc import TELEMETRY_HEADER, FailurePolicy, RecedingHorizonController, WarmStart
from .utils.units import kmh_to_ms

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cruisempc",
        description="Receding-horizon MPC speed control of a point-mass vehicle.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    horizon = parser.add_argument_group("horizon")
    horizon.add_argument("--horizon", "-N", type=int, default=DEFAULT_HORIZON,
                         help="prediction steps (default: %(default)s)")
    horizon.add_argument("--dt", type=float, default=DEFAULT_DT,
                         help="discretization step in seconds (default: %(default)s)")
    horizon.add_argument("--mass", type=float, default=DEFAULT_MASS,
                         help="vehicle mass in kg (default: %(default)s)")
    horizon.add_argument("--v-ref", type=float, default=100.0,
                         help="target speed in km/h (default: %(default)s)")
    horizon.add_argument("--u-min", type=float, default=DEFAULT_U_MIN,
                         help="lower force bound in N (default: %(default)s)")
    horizon.add_argument("--u-max", type=float, default=DEFAULT_U_MAX,
                         help="upper force bound in N (default: %(default)s)")

    run = parser.add_argument_group("run")
    length = run.add_mutually_exclusive_group()
    length.add_argument("--ticks", type=int, default=DEFAULT_TICKS,
                        help="control ticks to simulate (default: %(default)s)")
    length.add_argument("--forever", action="store_true",
                        help="run until interrupted")
    run.add_argument("--initial-speed", type=float, default=0.0,
                     help="initial speed in km/h (default: %(default)s)")
    run.add_argument("--warm-start", choices=[w.value for w in WarmStart],
                     default=WarmStart.PREVIOUS.value,
                     help="initial guess strategy (default: %(default)s)")
    run.add_argument("--on-failure", choices=[p.value for p in FailurePolicy],
                     default=FailurePolicy.RAISE.value,
                     help="reaction to a failed solve (default: %(default)s)")
    run.add_argument("--rebuild", action="store_true",
                     help="rebuild the horizon problem every tick")

    solver = parser.add_argument_group("solver")
    solver.add_argument("--method", choices=[m.value for m in Method],
                        default=Method.SQP.value,
                        help="solver strategy (default: %(default)s)")
    solver.add_argument("--max-iterations", type=int, default=None,
                        help="iteration budget per solve")
    solver.add_argument("--tolerance", type=float, default=None,
                        help="convergence tolerance")
    solver.add_argument("--time-limit", type=float, default=None,
                        help="wall-clock budget per solve in seconds")

    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="log solver diagnostics (-vv for debug)")
    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point.

    Returns:
        0 on success, 1 on a fatal solve failure, 2 on bad configuration
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        spec = HorizonSpec(
            horizon=args.horizon,
            dt=args.dt,
            mass=args.mass,
            v_ref=kmh_to_ms(args.v_ref),
            u_min=args.u_min,
            u_max=args.u_max,
        )
        options = SolverOptions(
            method=args.method,
            max_iterations=args.max_iterations,
            tolerance=args.tolerance,
            time_limit=args.time_limit,
        )
        controller = RecedingHorizonController(
            spec,
            options,
            warm_start=args.warm_start,
            failure_policy=args.on_failure,
            rebuild_each_tick=args.rebuild,
            initial_velocity=kmh_to_ms(args.initial_speed),
        )
        ticks = None if args.forever else args.ticks
        if ticks is not None and ticks < 0:
            raise ConfigurationError(f"ticks must be non-negative, got {ticks}")
    except (ConfigurationError, InvalidInputError) as e:
        print(f"cruisempc: {e}", file=sys.stderr)
        return 2

    logger.info(
        "horizon=%d dt=%.3g mass=%.6g v_ref=%.4f m/s bounds=[%.6g, %.6g] method=%s",
        spec.horizon, spec.dt, spec.mass, spec.v_ref, spec.u_min, spec.u_max, options.method,
    )

    print(TELEMETRY_HEADER)
    try:
        for record in controller.run(ticks):
            print(record.format(), flush=args.forever)
    except SolveFailure as e:
        print(f"cruisempc: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("stopped after %d ticks", controller.state.tick)

    return 0
