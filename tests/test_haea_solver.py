"""Tests for the HAEA solver."""

import math

import numpy as np
import pytest

from evo_ik.errors import MissingTargetError
from evo_ik.evolution.config import HAEAConfig
from evo_ik.evolution.fitness import PositionFitness
from evo_ik.evolution.haea_solver import HAEASolver, choose_operator, normalize_rates
from evo_ik.evolution.operators import ConvexCombination, GaussianMutation, UniformMutation
from evo_ik.kinematics import quaternion as quat
from evo_ik.kinematics.chain import build_chain
from evo_ik.kinematics.joint import Pose


def make_solver(seed=0, target=(1.0, 1.5, 0.5), **config):
    chain = build_chain([1.0, 1.0])
    solver = HAEASolver(chain, HAEAConfig(**config), seed=seed)
    solver.set_target(chain[-1], Pose(target))
    return chain, solver


class TestOperatorRates:
    """Tests for the rate helpers."""

    def test_choose_operator(self):
        rng = np.random.default_rng(0)
        assert choose_operator(np.array([0.0, 1.0, 0.0]), rng) == 1
        assert choose_operator(np.array([1.0, 0.0, 0.0]), rng) == 0

    def test_normalize(self):
        assert np.allclose(normalize_rates(np.array([1.0, 3.0])), [0.25, 0.75])
        assert np.allclose(normalize_rates(np.zeros(4)), 0.25)


class TestHAEASolver:
    """Tests for HAEASolver."""

    def test_default_operators(self):
        _, solver = make_solver()
        assert [type(op) for op in solver.operators] == [UniformMutation, GaussianMutation]
        _, solver = make_solver(convex=True)
        assert [type(op) for op in solver.operators] == [
            UniformMutation, ConvexCombination, GaussianMutation,
        ]

    def test_rates_stay_normalized(self):
        _, solver = make_solver(seed=1, convex=True, population_size=10)
        solver.reset()
        for _ in range(50):
            solver.iterate()
            for rates in solver.rates:
                assert len(rates) == 3
                assert np.sum(rates) == pytest.approx(1.0, abs=1e-5)
                assert np.all(rates >= 0.0) and np.all(rates <= 1.0)

        values = solver.operators_values()
        assert values.shape == (3, 50)
        assert np.allclose(values.sum(axis=0), 1.0, atol=1e-5)

    def test_execute(self):
        _, solver = make_solver(seed=2, population_size=8, max_iterations=20)
        best = solver.execute()
        assert best == solver.best_fitness
        assert len(solver.statistics) == 20
        assert solver.operators_values().shape == (2, 20)
        assert len(solver.population) == 8

    def test_best_never_regresses(self):
        _, solver = make_solver(seed=3, convex=True)
        solver.reset()
        trace = [solver.best_fitness]
        for _ in range(30):
            solver.iterate()
            trace.append(solver.best_fitness)
            assert solver.best_fitness <= min(ind.fitness for ind in solver.population)
        assert np.all(np.diff(trace) <= 0)

    def test_add_operator(self):
        _, solver = make_solver(seed=4, population_size=4)
        solver.reset()
        solver.add_operator(ConvexCombination(weights=[0.5, 0.5]))
        assert all(len(rates) == 3 for rates in solver.rates)
        solver.iterate()
        assert solver.operators_values().shape == (3, 1)

    def test_error(self):
        _, solver = make_solver(seed=5)
        assert math.isnan(solver.error())
        solver.reset()
        assert solver.error() == pytest.approx(solver.best_fitness)

    def test_missing_target(self):
        solver = HAEASolver(build_chain([1.0]))
        assert not solver.changed()
        with pytest.raises(MissingTargetError):
            solver.execute()

    def test_update_writes_best(self):
        chain, solver = make_solver(seed=6, max_iterations=10)
        best = solver.execute()
        solver.update()
        live = PositionFitness().evaluate(chain, solver.targets).fitness
        assert live == pytest.approx(best, abs=1e-9)

    def test_solve(self):
        chain, solver = make_solver(
            seed=7, target=(3.0, 3.0, 0.0), max_iterations=10, times_per_frame=4.0,
        )
        assert solver.solve() is False
        assert solver.iterations == 4
        assert not solver.changed()

    def test_round_trip_is_exact(self):
        rng = np.random.default_rng(41)
        chain = build_chain([1.0, 1.0, 1.0])
        for joint in chain:
            joint.rotate(quat.from_euler(*rng.uniform(-1.0, 1.0, size=3)))
        before = [joint.rotation for joint in chain]

        # The unperturbed copy of the chain is the only exact solution
        solver = HAEASolver(chain, HAEAConfig(population_size=6), seed=42)
        solver.set_target(chain[-1], Pose.of(chain[-1]))
        solver.reset()
        assert solver.best_fitness == 0.0
        solver.update()

        for joint, rotation in zip(chain, before):
            assert np.array_equal(joint.rotation, rotation)
