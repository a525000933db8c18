"""
Test that cruisempc can be imported and the public API is exposed.
"""

import pytest


def test_import_cruisempc():
    """Verify cruisempc package can be imported."""
    import cruisempc
    assert hasattr(cruisempc, "__version__")


def test_version_format():
    """Verify version string is properly formatted."""
    import cruisempc
    version = cruisempc.__version__

    parts = version.split(".")
    assert len(parts) >= 2
    assert all(p.isdigit() or "-" in p for p in parts)


def test_import_controller():
    """Verify controller classes can be imported."""
    from cruisempc import RecedingHorizonController, HorizonSpec, SolverOptions
    assert RecedingHorizonController is not None
    assert HorizonSpec is not None
    assert SolverOptions is not None


def test_import_solve():
    """Verify solve function can be imported."""
    from cruisempc import solve
    assert callable(solve)


def test_import_exceptions():
    """Verify exceptions can be imported."""
    from cruisempc import (
        CruiseMPCError,
        ConfigurationError,
        SolveFailure,
        InfeasibleError,
        IterationLimitError,
        NumericalError,
        DeadlineExceededError,
    )

    assert issubclass(ConfigurationError, CruiseMPCError)
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(SolveFailure, CruiseMPCError)
    for cls in (InfeasibleError, IterationLimitError, NumericalError, DeadlineExceededError):
        assert issubclass(cls, SolveFailure)


def test_import_mpc_module():
    """Verify mpc subpackage exports."""
    from cruisempc import mpc

    for name in mpc.__all__:
        assert hasattr(mpc, name)


def test_info():
    """info() reports versions."""
    import cruisempc

    text = cruisempc.info()
    assert "cruisempc version" in text
    assert "scipy version" in text


def test_units():
    """km/h <-> m/s conversion."""
    from cruisempc import kmh_to_ms, ms_to_kmh

    assert kmh_to_ms(36.0) == pytest.approx(10.0)
    assert ms_to_kmh(10.0) == pytest.approx(36.0)
    assert ms_to_kmh(kmh_to_ms(100.0)) == pytest.approx(100.0)
