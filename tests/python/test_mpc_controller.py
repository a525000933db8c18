"""
Tests for the receding-horizon controller.

Tests covering:
1. Single solves and first-action extraction
2. Tick bookkeeping and warm start
3. Failure policies
4. Streaming from an external feed
"""

import numpy as np
import pytest


def _failed_result(spec, status_name="NUMERICAL_ERROR"):
    from cruisempc import SolveResult, Status

    return SolveResult(
        status=Status[status_name],
        objective=float("nan"),
        x=np.zeros(spec.n_vars),
        iterations=3,
        solve_time=0.001,
        message="line search failed",
    )


class TestSolve:
    """Test RecedingHorizonController.solve."""

    def test_basic_creation(self, reference_spec):
        """Create controller with defaults."""
        from cruisempc import RecedingHorizonController, WarmStart, FailurePolicy

        controller = RecedingHorizonController(reference_spec)

        assert controller.spec is reference_spec
        assert controller.warm_start == WarmStart.PREVIOUS
        assert controller.failure_policy == FailurePolicy.RAISE
        assert controller.state.velocity == 0.0
        assert controller.state.tick == 0
        np.testing.assert_array_equal(controller.state.guess, 0.0)

    def test_solve_result(self, reference_spec):
        """MPCResult splits velocities and forces."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(reference_spec)
        result = controller.solve(0.0)

        assert result.is_optimal
        assert result.x.shape == (21,)
        assert result.u.shape == (20,)
        assert result.z.shape == (41,)
        np.testing.assert_array_equal(result.predicted_trajectory, result.x)

    def test_first_action_is_index_n_plus_one(self, reference_spec):
        """Applied control is z[N+1] and nothing else."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(reference_spec, initial_velocity=26.0)
        result = controller.solve(26.0)

        assert result.optimal_control == result.z[reference_spec.horizon + 1]
        assert result.optimal_control == result.u[0]

    def test_step_applies_first_action(self, reference_spec, monkeypatch):
        """Tick applies exactly z[N+1] from the solver output."""
        from cruisempc import RecedingHorizonController, SolveResult, Status
        import cruisempc.mpc.controller as controller_module

        z = np.arange(reference_spec.n_vars, dtype=float)
        monkeypatch.setattr(
            controller_module,
            "solve",
            lambda instance, options: SolveResult(
                status=Status.OPTIMAL, objective=0.0, x=z.copy(),
                iterations=1, solve_time=0.0,
            ),
        )

        controller = RecedingHorizonController(reference_spec)
        record = controller.step()

        assert record.control == z[reference_spec.horizon + 1]
        assert record.velocity == pytest.approx(21.0 / 1500.0 * 0.1)

    def test_solve_does_not_touch_state(self, reference_spec):
        """solve() is side-effect free."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(reference_spec)
        controller.solve(10.0)

        assert controller.state.velocity == 0.0
        assert controller.state.tick == 0

    def test_solve_failure_raises(self, reference_spec):
        """solve() raises SolveFailure on a failed status."""
        from cruisempc import RecedingHorizonController, SolveFailure, SolverOptions

        controller = RecedingHorizonController(
            reference_spec, SolverOptions(time_limit=1e-9)
        )

        with pytest.raises(SolveFailure):
            controller.solve(0.0, tick=3)

    @pytest.mark.parametrize("kwargs", [
        {"warm_start": "lukewarm"},
        {"failure_policy": "ignore"},
    ])
    def test_invalid_choices(self, reference_spec, kwargs):
        """Unknown enum values are configuration errors."""
        from cruisempc import ConfigurationError, RecedingHorizonController

        with pytest.raises(ConfigurationError):
            RecedingHorizonController(reference_spec, **kwargs)


class TestStep:
    """Tick bookkeeping."""

    def test_step_record(self, reference_spec):
        """First tick from rest applies full force."""
        from cruisempc import RecedingHorizonController, Status

        controller = RecedingHorizonController(reference_spec)
        record = controller.step()

        assert record.tick == 0
        assert record.time == 0.0
        assert record.status == Status.OPTIMAL
        assert record.control == pytest.approx(3000.0, abs=1e-3)
        assert record.velocity == pytest.approx(0.2, abs=1e-6)
        assert record.velocity_kmh == pytest.approx(0.72, abs=1e-5)
        assert not record.degraded

        assert controller.state.tick == 1
        assert controller.state.velocity == record.velocity
        assert controller.state.last_control == record.control

    def test_time_advances_by_dt(self, short_spec):
        """Elapsed time is tick * dt."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec, initial_velocity=9.0)
        records = list(controller.run(ticks=4))

        assert [r.tick for r in records] == [0, 1, 2, 3]
        np.testing.assert_allclose([r.time for r in records], [0.0, 0.1, 0.2, 0.3])

    def test_warm_start_previous(self, short_spec):
        """PREVIOUS carries the last decision vector forward."""
        from cruisempc import RecedingHorizonController, WarmStart

        controller = RecedingHorizonController(short_spec, warm_start=WarmStart.PREVIOUS)
        result = controller.solve(controller.state.velocity)
        controller.step()

        np.testing.assert_allclose(controller.state.guess, result.z, atol=1e-6)

    def test_warm_start_shifted(self, short_spec):
        """SHIFTED moves the horizon one step."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec, warm_start="shifted")
        result = controller.solve(controller.state.velocity)
        controller.step()

        np.testing.assert_allclose(
            controller.state.guess, controller.problem.shift(result.z), atol=1e-6
        )

    def test_warm_start_cold(self, short_spec):
        """COLD resets the guess every tick."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec, warm_start="cold")
        controller.step()

        np.testing.assert_array_equal(controller.state.guess, 0.0)

    def test_reset(self, short_spec):
        """reset() starts a fresh session."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec)
        list(controller.run(ticks=3))
        controller.reset(velocity=4.0)

        assert controller.state.tick == 0
        assert controller.state.velocity == 4.0
        np.testing.assert_array_equal(controller.state.guess, 0.0)

    def test_rebuild_each_tick_matches_bind(self, short_spec):
        """Both construction strategies produce the same loop."""
        from cruisempc import RecedingHorizonController

        bound = RecedingHorizonController(short_spec, initial_velocity=8.0)
        rebuilt = RecedingHorizonController(
            short_spec, initial_velocity=8.0, rebuild_each_tick=True
        )

        a = bound.simulate(ticks=10)
        b = rebuilt.simulate(ticks=10)

        np.testing.assert_allclose(a.controls, b.controls, atol=1e-9)
        np.testing.assert_allclose(a.velocities, b.velocities, atol=1e-12)

    def test_run_rejects_negative_ticks(self, short_spec):
        """Tick count must be non-negative."""
        from cruisempc import ConfigurationError, RecedingHorizonController

        controller = RecedingHorizonController(short_spec)

        with pytest.raises(ConfigurationError):
            list(controller.run(ticks=-1))

    def test_run_unbounded(self, short_spec):
        """ticks=None keeps yielding until the caller stops."""
        import itertools
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec, initial_velocity=9.5)
        records = list(itertools.islice(controller.run(ticks=None), 5))

        assert len(records) == 5
        assert controller.state.tick == 5


class TestFailurePolicy:
    """Reaction to failed solves."""

    def test_raise_is_fatal(self, short_spec, monkeypatch):
        """RAISE propagates the failure with the tick index."""
        from cruisempc import NumericalError, RecedingHorizonController
        import cruisempc.mpc.controller as controller_module

        controller = RecedingHorizonController(short_spec, initial_velocity=9.0)
        controller.step()
        velocity = controller.state.velocity

        monkeypatch.setattr(
            controller_module, "solve", lambda instance, options: _failed_result(short_spec)
        )

        with pytest.raises(NumericalError) as excinfo:
            controller.step()

        assert excinfo.value.tick == 1
        assert "line search failed" in str(excinfo.value)
        assert "tick 1" in str(excinfo.value)
        # nothing applied
        assert controller.state.tick == 1
        assert controller.state.velocity == velocity

    def test_hold_reapplies_last_control(self, short_spec, monkeypatch, caplog):
        """HOLD keeps the previous force and flags the tick."""
        import logging
        from cruisempc import RecedingHorizonController, Status
        import cruisempc.mpc.controller as controller_module

        controller = RecedingHorizonController(
            short_spec, initial_velocity=5.0, failure_policy="hold"
        )
        first = controller.step()

        monkeypatch.setattr(
            controller_module,
            "solve",
            lambda instance, options: _failed_result(short_spec, "MAX_ITERATIONS"),
        )

        with caplog.at_level(logging.WARNING, logger="cruisempc.mpc.controller"):
            second = controller.step()

        assert second.degraded
        assert second.status == Status.MAX_ITERATIONS
        assert second.control == first.control
        assert second.velocity == pytest.approx(
            short_spec.vehicle.step(first.velocity, first.control, short_spec.dt)
        )
        assert controller.state.degraded
        np.testing.assert_array_equal(controller.state.guess, 0.0)
        assert "tick 1" in caplog.text
        assert "hold" in caplog.text

    def test_coast_applies_zero_force(self, short_spec, monkeypatch):
        """COAST applies zero force."""
        from cruisempc import RecedingHorizonController
        import cruisempc.mpc.controller as controller_module

        monkeypatch.setattr(
            controller_module, "solve", lambda instance, options: _failed_result(short_spec)
        )

        controller = RecedingHorizonController(
            short_spec, initial_velocity=5.0, failure_policy="coast"
        )
        record = controller.step()

        assert record.degraded
        assert record.control == 0.0
        assert record.velocity == 5.0

    def test_coast_respects_bounds(self, monkeypatch):
        """Zero force is clipped into a box that excludes it."""
        from cruisempc import HorizonSpec, RecedingHorizonController
        import cruisempc.mpc.controller as controller_module

        spec = HorizonSpec(horizon=4, u_min=100.0, u_max=500.0)
        monkeypatch.setattr(
            controller_module, "solve", lambda instance, options: _failed_result(spec)
        )

        controller = RecedingHorizonController(spec, failure_policy="coast")

        assert controller.step().control == 100.0

    def test_recovers_after_failure(self, short_spec, monkeypatch):
        """A degraded tick does not stop the loop."""
        from cruisempc import RecedingHorizonController
        import cruisempc.mpc.controller as controller_module

        real_solve = controller_module.solve
        calls = {"n": 0}

        def flaky(instance, options):
            calls["n"] += 1
            if calls["n"] == 2:
                return _failed_result(short_spec)
            return real_solve(instance, options)

        monkeypatch.setattr(controller_module, "solve", flaky)

        controller = RecedingHorizonController(
            short_spec, initial_velocity=8.0, failure_policy="hold"
        )
        traj = controller.simulate(ticks=5)

        assert traj.n_degraded == 1
        assert list(traj.degraded) == [False, True, False, False, False]


class TestStream:
    """External sensor feed."""

    def test_stream_uses_measurements(self, short_spec):
        """Each measurement replaces the plant velocity."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec)
        measurements = [short_spec.v_ref - 1.0, short_spec.v_ref + 1.0]
        records = list(controller.stream(measurements))

        assert len(records) == 2
        assert records[0].control > 0
        assert records[1].control < 0

    def test_stream_matches_solve(self, short_spec):
        """Streamed control equals a standalone solve from the measurement."""
        from cruisempc import RecedingHorizonController

        controller = RecedingHorizonController(short_spec)
        expected = controller.solve(7.0).optimal_control

        record = next(controller.stream([7.0]))

        assert record.control == pytest.approx(expected, abs=1e-6)

    def test_stream_rejects_nan(self, short_spec):
        """Invalid measurements raise before solving."""
        from cruisempc import InvalidInputError, RecedingHorizonController

        controller = RecedingHorizonController(short_spec)

        with pytest.raises(InvalidInputError):
            list(controller.stream([float("nan")]))

    def test_failed_measurement_tick_keeps_state(self, short_spec, monkeypatch):
        """A fatal failure does not adopt the streamed measurement."""
        from cruisempc import NumericalError, RecedingHorizonController
        import cruisempc.mpc.controller as controller_module

        controller = RecedingHorizonController(short_spec, initial_velocity=9.0)
        monkeypatch.setattr(
            controller_module, "solve", lambda instance, options: _failed_result(short_spec)
        )

        with pytest.raises(NumericalError):
            next(controller.stream([12.0]))

        assert controller.state.velocity == 9.0
        assert controller.state.tick == 0
