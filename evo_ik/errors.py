"""Exceptions raised by the IK solvers."""


class EvolutionError(Exception):
    """Base class for all solver errors."""


class InvalidChainError(EvolutionError):
    """The kinematic chain is empty, malformed or has the wrong topology."""


class MissingTargetError(EvolutionError):
    """A solver was stepped or queried without a registered target."""


class OddParentCountError(EvolutionError):
    """Pairwise crossover needs an even number of parents."""

    def __init__(self, population_size: int):
        self.population_size = population_size
        super().__init__(
            f"Population size must be even for pairwise crossover, got {population_size}"
        )


class StaleHandleError(EvolutionError):
    """A population handle outlived the generation it was issued for."""

    def __init__(self, handle_generation: int, current_generation: int):
        self.handle_generation = handle_generation
        self.current_generation = current_generation
        super().__init__(
            f"Handle from generation {handle_generation} used in generation {current_generation}"
        )
