"""Tests for the evolutionary strategy solver."""

import numpy as np
import pytest

from evo_ik.errors import InvalidChainError, MissingTargetError
from evo_ik.evolution.config import ESConfig
from evo_ik.evolution.es_solver import ESSolver, power_law_step
from evo_ik.kinematics import quaternion as quat
from evo_ik.kinematics.chain import build_chain
from evo_ik.kinematics.joint import Joint, Pose


def make_solver(seed=0, **config):
    chain = build_chain([1.0, 1.0])
    solver = ESSolver(chain, ESConfig(**config), seed=seed)
    return chain, solver


class TestESExecute:
    """Tests for offline ES runs."""

    def test_far_target_improves(self):
        # Reachable target about 54 units from the end effector
        chain = build_chain([20.0, 20.0])
        solver = ESSolver(chain, ESConfig(sigma=0.1, max_iterations=1000), seed=0)
        solver.set_target(Pose((30.0, 0.0, -20.0)))
        initial = solver.error()

        results = solver.execute()
        assert len(results) == 1000
        assert results[-1] < initial

    def test_trace_never_regresses(self):
        chain, solver = make_solver(seed=5, max_iterations=200)
        solver.set_target(Pose((1.0, 1.0, 0.5)))
        results = solver.execute()
        assert np.all(np.diff(results) <= 0)

    def test_power_law_trace_never_regresses(self):
        chain, solver = make_solver(seed=6, max_iterations=200, power_law=True, alpha=2.5)
        solver.set_target(Pose((1.0, 1.0, 0.5)))
        results = solver.execute()
        assert np.all(np.diff(results) <= 0)

    def test_execute_does_not_touch_chain(self):
        chain, solver = make_solver(max_iterations=50)
        solver.set_target(Pose((1.0, 1.0, 0.0)))
        solver.execute()
        assert np.allclose(chain[2].position, [0.0, 2.0, 0.0])

    def test_update_writes_back(self):
        chain, solver = make_solver(max_iterations=100)
        solver.set_target(Pose((1.0, 1.0, 0.0)))
        results = solver.execute()
        solver.update()
        assert solver.error() == pytest.approx(results[-1], abs=1e-9)

    def test_same_seed_same_trace(self):
        _, a = make_solver(seed=11, max_iterations=30)
        _, b = make_solver(seed=11, max_iterations=30)
        for solver in (a, b):
            solver.set_target(Pose((0.5, 1.5, 0.2)))
        assert np.array_equal(a.execute(), b.execute())


class TestESTarget:
    """Tests for target handling and change detection."""

    def test_missing_target(self):
        _, solver = make_solver()
        with pytest.raises(MissingTargetError):
            solver.iterate()
        with pytest.raises(MissingTargetError):
            solver.error()

    def test_last_target_wins(self):
        chain, solver = make_solver()
        solver.set_target(Pose((9.0, 9.0, 9.0)))
        solver.set_target(chain[-1], Pose((0.0, 2.0, 1.0)))
        assert solver.error() == pytest.approx(1.0)

    def test_foreign_end_effector(self):
        _, solver = make_solver()
        with pytest.raises(InvalidChainError):
            solver.set_target(Joint(), Pose((0.0, 0.0, 0.0)))

    def test_changed(self):
        _, solver = make_solver()
        assert not solver.changed()

        target = Joint(translation=(1.0, 1.0, 0.0))
        solver.set_target(target)
        assert solver.changed()
        solver.reset()
        assert not solver.changed()

        target.set_translation((2.0, 1.0, 0.0))
        assert solver.changed()

    def test_invalid_chain(self):
        with pytest.raises(InvalidChainError):
            ESSolver([])


class TestESSolve:
    """Tests for the per-tick driver."""

    def test_budget(self):
        _, solver = make_solver(max_iterations=10, times_per_frame=5.0)
        solver.set_target(Pose((50.0, 0.0, 0.0)))
        assert solver.solve() is False
        assert solver.iterations == 5
        assert solver.solve() is False
        assert solver.solve() is True

    def test_converged_on_reachable_target(self):
        chain, solver = make_solver(max_iterations=10, min_distance=0.5)
        # Target already within min_distance of the end effector
        solver.set_target(Pose((0.0, 2.1, 0.0)))
        solver.solve()
        assert solver.iterations == 10
        assert solver.last_iteration == 0

    def test_forced_change(self):
        _, solver = make_solver(max_iterations=5, times_per_frame=5.0)
        solver.set_target(Pose((50.0, 0.0, 0.0)))
        solver.solve()
        assert solver.solve() is True
        solver.change()
        assert solver.solve() is False

    def test_max_error_ends_budget(self):
        # min_distance 0 disables convergence, so only max_error can stop early
        _, solver = make_solver(
            max_iterations=100, times_per_frame=2.0, min_distance=0.0, max_error=0.5,
        )
        solver.set_target(Pose((0.0, 2.1, 0.0)))
        assert solver.solve() is False
        assert solver.iterations == 100
        assert solver.solve() is True

    def test_max_error_not_reached(self):
        _, solver = make_solver(max_iterations=100, times_per_frame=2.0, max_error=0.5)
        solver.set_target(Pose((50.0, 0.0, 0.0)))
        solver.solve()
        assert solver.iterations == 2


class TestESWriteBack:
    """Tests for copying the working chain onto the live chain."""

    def test_round_trip_is_exact(self):
        rng = np.random.default_rng(31)
        chain = build_chain([1.0, 1.0, 1.0])
        for joint in chain:
            joint.rotate(quat.from_euler(*rng.uniform(-1.0, 1.0, size=3)))
        before = [joint.rotation for joint in chain]

        solver = ESSolver(chain, seed=32)
        solver.set_target(Pose((0.0, 0.0, 5.0)))
        solver.reset()
        solver.update()

        for joint, rotation in zip(chain, before):
            assert np.array_equal(joint.rotation, rotation)


class TestESConfig:
    """Tests for ES configuration."""

    def test_invalid_sigma(self):
        with pytest.raises(ValueError):
            ESConfig(sigma=0.0)

    def test_power_law_step(self):
        u = np.array([0.0, 0.5])
        assert np.allclose(power_law_step(u, 2.0), [1.0, 2.0])
