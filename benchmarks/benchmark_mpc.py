#!/usr/bin/env python3
"""
cruisempc Benchmark: solver strategies and warm starts
"""

import sys
sys.path.insert(0, '../python')

import time
import numpy as np

import cruisempc
from cruisempc import HorizonSpec, RecedingHorizonController, SolverOptions, kmh_to_ms

print(f"cruisempc version: {cruisempc.__version__}")
print()


def run_loop(spec, method, warm_start, rebuild=False, ticks=200):
    """Run one closed loop and collect per-tick solver statistics."""
    controller = RecedingHorizonController(
        spec,
        SolverOptions(method=method),
        warm_start=warm_start,
        failure_policy="hold",
        rebuild_each_tick=rebuild,
    )

    start = time.perf_counter()
    traj = controller.simulate(ticks=ticks)
    elapsed = time.perf_counter() - start

    return {
        'time': elapsed,
        'mean_solve': float(np.mean(traj.solve_times)),
        'max_solve': float(np.max(traj.solve_times)),
        'iterations': float(np.mean(traj.iterations)),
        'degraded': traj.n_degraded,
        'settling': traj.settling_tick(spec.v_ref, band=kmh_to_ms(1.0)),
        'final_kmh': float(traj.velocities_kmh[-1]),
    }


def benchmark_strategies():
    """SQP vs interior point, with each warm-start mode."""
    print("=" * 78)
    print("Reference scenario: 0 -> 100 km/h, N=20, 200 ticks")
    print("=" * 78)

    spec = HorizonSpec(v_ref=kmh_to_ms(100.0))

    print(f"{'method':>16} {'warm start':>10} {'total (s)':>10} {'mean (ms)':>10} "
          f"{'max (ms)':>10} {'iters':>7} {'settle':>7}")
    print("-" * 78)

    for method in ("sqp", "interior_point"):
        for warm_start in ("cold", "previous", "shifted"):
            res = run_loop(spec, method, warm_start)
            print(f"{method:>16} {warm_start:>10} {res['time']:>10.2f} "
                  f"{res['mean_solve']*1000:>10.2f} {res['max_solve']*1000:>10.2f} "
                  f"{res['iterations']:>7.1f} {str(res['settling']):>7}")
            if res['degraded']:
                print(f"{'':>16} {res['degraded']} degraded ticks")


def benchmark_rebuild():
    """Parameter injection vs full rebuild every tick."""
    print("\n" + "=" * 78)
    print("Problem construction: bind vs rebuild")
    print("=" * 78)

    spec = HorizonSpec(v_ref=kmh_to_ms(100.0))

    for rebuild in (False, True):
        res = run_loop(spec, "sqp", "previous", rebuild=rebuild)
        label = "rebuild" if rebuild else "bind"
        print(f"  {label:>8}: {res['time']:.2f} s total, "
              f"{res['mean_solve']*1000:.2f} ms per solve")


def benchmark_horizon():
    """Solve time against horizon length."""
    print("\n" + "=" * 78)
    print("Horizon scaling (SQP, warm start)")
    print("=" * 78)
    print(f"{'N':>6} {'vars':>6} {'mean (ms)':>10} {'max (ms)':>10} {'final (km/h)':>13}")
    print("-" * 78)

    for horizon in (10, 20, 40, 80):
        spec = HorizonSpec(horizon=horizon, v_ref=kmh_to_ms(100.0))
        res = run_loop(spec, "sqp", "previous")
        print(f"{horizon:>6} {spec.n_vars:>6} {res['mean_solve']*1000:>10.2f} "
              f"{res['max_solve']*1000:>10.2f} {res['final_kmh']:>13.2f}")


if __name__ == "__main__":
    benchmark_strategies()
    benchmark_rebuild()
    benchmark_horizon()
