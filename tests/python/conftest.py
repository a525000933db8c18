"""
pytest configuration and fixtures for cruisempc tests.
"""

import pytest
import numpy as np


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def reference_spec():
    """
    Reference cruise scenario.

    1500 kg vehicle, 100 km/h target, +/-3000 N, N=20, dt=0.1 s.
    Full force changes the velocity by 0.2 m/s per step.
    """
    from cruisempc import HorizonSpec, kmh_to_ms

    return HorizonSpec(
        horizon=20,
        dt=0.1,
        mass=1500.0,
        v_ref=kmh_to_ms(100.0),
        u_min=-3000.0,
        u_max=3000.0,
    )


@pytest.fixture
def short_spec():
    """Small horizon close to the reference speed, for fast loops."""
    from cruisempc import HorizonSpec

    return HorizonSpec(
        horizon=8,
        dt=0.1,
        mass=1000.0,
        v_ref=10.0,
        u_min=-2000.0,
        u_max=2000.0,
    )


@pytest.fixture
def reference_problem(reference_spec):
    """Horizon problem for the reference scenario."""
    from cruisempc.mpc import HorizonProblem

    return HorizonProblem(reference_spec)


@pytest.fixture(scope="session")
def reference_run():
    """
    200-tick closed loop of the reference scenario from rest.

    Shared across tests: the run is deterministic and takes a few
    seconds.
    """
    from cruisempc import HorizonSpec, RecedingHorizonController, kmh_to_ms

    spec = HorizonSpec(v_ref=kmh_to_ms(100.0))
    controller = RecedingHorizonController(spec, initial_velocity=0.0)
    return controller.simulate(ticks=200)


@pytest.fixture
def random_decision_vector(reference_spec):
    """Arbitrary decision vector of the right length."""
    rng = np.random.default_rng(42)
    return rng.normal(scale=10.0, size=reference_spec.n_vars)


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
