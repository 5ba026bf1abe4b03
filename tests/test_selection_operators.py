"""Tests for selection strategies and genetic operators."""

import numpy as np
import pytest

from evo_ik.evolution.individual import Individual
from evo_ik.evolution.operators import ConvexCombination, GaussianMutation, UniformMutation
from evo_ik.evolution.selection import Elitism, Ranking, Roulette, Tournament, Uniform
from evo_ik.kinematics import quaternion as quat
from evo_ik.kinematics.chain import build_chain
from evo_ik.kinematics.constraint import Hinge


def make_population(values):
    """Individuals over a one-link chain with preset fitness values."""
    chain = build_chain([1.0])
    population = []
    for value in values:
        individual = Individual.from_chain(chain)
        individual.fitness = value
        population.append(individual)
    return population


class TestSelection:
    """Tests for selection strategies."""

    def test_uniform_returns_members(self):
        rng = np.random.default_rng(0)
        population = make_population([1.0, 2.0, 3.0])
        chosen = Uniform().choose(False, population, 7, rng)
        assert len(chosen) == 7
        assert all(any(c is p for p in population) for c in chosen)

    def test_tournament_prefers_low_fitness(self):
        rng = np.random.default_rng(1)
        population = make_population([1.0, 2.0, 3.0, 4.0])
        chosen = Tournament().choose(False, population, 1000, rng)
        assert np.mean([c.fitness for c in chosen]) < 2.0

    def test_tournament_maximize(self):
        rng = np.random.default_rng(2)
        population = make_population([1.0, 2.0, 3.0, 4.0])
        chosen = Tournament().choose(True, population, 1000, rng)
        assert np.mean([c.fitness for c in chosen]) > 3.0

    def test_tournament_skips_unevaluated(self):
        rng = np.random.default_rng(3)
        population = make_population([float("nan"), 5.0])
        chosen = Tournament(size=8).choose(False, population, 50, rng)
        # With 8 draws from 2 slots the evaluated one is almost always present
        assert sum(c.fitness == 5.0 for c in chosen) >= 45

    def test_tournament_size(self):
        with pytest.raises(ValueError):
            Tournament(size=0)

    def test_ranking_prefers_low_fitness(self):
        rng = np.random.default_rng(4)
        population = make_population([1.0, 2.0, 3.0, 4.0])
        chosen = Ranking().choose(False, population, 2000, rng)
        assert np.mean([c.fitness for c in chosen]) < 2.3

    def test_exponential_ranking(self):
        rng = np.random.default_rng(5)
        population = make_population([1.0, 2.0, 3.0, 4.0])
        chosen = Ranking(exponential=True).choose(False, population, 10, rng)
        assert len(chosen) == 10

    def test_roulette_proportional(self):
        rng = np.random.default_rng(15)
        population = make_population([0.0, 0.0, 1.0])
        chosen = Roulette().choose(True, population, 20, rng)
        assert all(c is population[2] for c in chosen)

    def test_roulette_prefers_low_fitness(self):
        rng = np.random.default_rng(16)
        population = make_population([0.0, 9.0])
        chosen = Roulette().choose(False, population, 1000, rng)
        # Weights 1 and 0.1
        assert sum(c is population[0] for c in chosen) > 800

    def test_roulette_external_fitness(self):
        rng = np.random.default_rng(17)
        population = make_population([0.0, 5.0, 5.0])
        roulette = Roulette()
        roulette.set_fitness([1.0, 0.0, 0.0])
        chosen = roulette.choose(True, population, 20, rng)
        assert all(c is population[0] for c in chosen)

        roulette.set_fitness([1.0, 2.0])
        with pytest.raises(ValueError):
            roulette.choose(True, population, 1, rng)

    def test_roulette_negative_fitness(self):
        rng = np.random.default_rng(18)
        with pytest.raises(ValueError):
            Roulette().choose(False, make_population([-1.0, 2.0]), 1, rng)

    def test_elitism_split(self):
        rng = np.random.default_rng(6)
        population = make_population([float(v) for v in range(10)])
        chosen = Elitism().choose(False, population, 10, rng)
        assert all(c.fitness <= 1.0 for c in chosen[:5])
        assert all(2.0 <= c.fitness <= 8.0 for c in chosen[5:])

    def test_empty_population(self):
        rng = np.random.default_rng(7)
        with pytest.raises(ValueError):
            Tournament().choose(False, [], 1, rng)


class TestMutation:
    """Tests for mutation operators."""

    def test_uniform_mutation_leaves_parent(self):
        rng = np.random.default_rng(8)
        parent = Individual.from_chain(build_chain([1.0]))
        before = [joint.rotation for joint in parent.structure]

        child = UniformMutation().apply(parent, rng=rng)
        assert child is not parent
        for joint, rotation in zip(parent.structure, before):
            assert np.array_equal(joint.rotation, rotation)

    def test_single_joint_always_mutates(self):
        rng = np.random.default_rng(9)
        parent = Individual.from_chain([build_chain([1.0])[0]])
        for operator in (UniformMutation(), GaussianMutation()):
            child = operator.apply(parent, rng=rng)
            assert not np.allclose(child.structure[0].rotation, parent.structure[0].rotation)

    def test_mutation_honors_constraint(self):
        rng = np.random.default_rng(10)
        hinge = Hinge(min_angle=0.0, max_angle=0.0)
        parent = Individual.from_chain(build_chain([], constraints=[hinge]))
        child = GaussianMutation().apply(parent, rng=rng)
        assert hinge.twist_angle(child.structure[0].rotation) == pytest.approx(0.0)

    def test_arity(self):
        rng = np.random.default_rng(11)
        a = Individual.from_chain(build_chain([1.0]))
        with pytest.raises(ValueError):
            UniformMutation().apply(a, a.clone(), rng=rng)


class TestConvexCombination:
    """Tests for ConvexCombination."""

    def test_weights_select_parent(self):
        rng = np.random.default_rng(12)
        a = Individual.from_chain(build_chain([1.0, 1.0]))
        b = Individual.from_chain(build_chain([1.0, 1.0]))
        a.structure[0].rotate(quat.from_euler(0.2, 0.1, 0.4))
        b.structure[1].rotate(quat.from_euler(-0.3, 0.0, 0.2))

        child = ConvexCombination(weights=[1.0, 0.0]).apply(a, b, rng=rng)
        assert np.allclose(child.structure[2].position, a.structure[2].position)

    def test_blend_of_identical_parents(self):
        rng = np.random.default_rng(13)
        a = Individual.from_chain(build_chain([1.0, 1.0]))
        a.structure[1].rotate(quat.from_euler(0.1, -0.2, 0.3))
        child = ConvexCombination().apply(a, a.clone(), rng=rng)
        assert np.allclose(child.structure[2].position, a.structure[2].position)

    def test_midpoint(self):
        rng = np.random.default_rng(14)
        a = Individual.from_chain(build_chain([1.0]))
        b = Individual.from_chain(build_chain([1.0]))
        b.structure[0].rotate(quat.from_axis_angle((0, 0, 1), 0.8))

        child = ConvexCombination(weights=[0.5, 0.5]).apply(a, b, rng=rng)
        assert quat.to_euler(child.structure[0].rotation)[2] == pytest.approx(0.4)

    def test_invalid_weights(self):
        with pytest.raises(ValueError):
            ConvexCombination(weights=[0.0, 0.0])
