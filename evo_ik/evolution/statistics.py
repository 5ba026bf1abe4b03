"""Per-generation summary of a population's fitness values."""

from typing import Iterable, Union

import numpy as np

from .individual import Individual


class Statistics:
    """
    Read-only snapshot of a population's fitness distribution.

    Computed from a sorted copy of the values; the population itself is
    never touched.
    """

    def __init__(self, population: Iterable[Union[Individual, float]]):
        values = [
            item.fitness if isinstance(item, Individual) else float(item)
            for item in population
        ]
        if not values:
            raise ValueError("Statistics need at least one fitness value")

        sorted_values = np.sort(np.asarray(values, dtype=float))
        n = len(sorted_values)

        self.best = float(sorted_values[0])
        self.worst = float(sorted_values[-1])
        self.avg = float(np.mean(sorted_values))
        if n % 2 == 1:
            self.median = float(sorted_values[n // 2])
        else:
            self.median = float((sorted_values[n // 2 - 1] + sorted_values[n // 2]) / 2)
        self.std_avg = float(np.sqrt(np.mean((sorted_values - self.avg) ** 2)))
        self.std_median = float(np.sqrt(np.mean((sorted_values - self.median) ** 2)))
        self.size = n

    def to_dict(self) -> dict:
        return {
            "best": self.best,
            "worst": self.worst,
            "avg": self.avg,
            "median": self.median,
            "std_avg": self.std_avg,
            "std_median": self.std_median,
        }

    def __repr__(self) -> str:
        return (
            f"Statistics(best={self.best:.4f}, worst={self.worst:.4f}, "
            f"avg={self.avg:.4f}, median={self.median:.4f}, "
            f"std_avg={self.std_avg:.4f}, std_median={self.std_median:.4f})"
        )
