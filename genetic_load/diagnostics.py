"""Population-level genetic-load summary statistics.

Computed from the genetic-load traits of the individuals in one
population, once per generation:
  - mean and variance of expressed fitness
  - number of lethal genotypes (fitness ≤ 0)
  - mean mutation count per individual
  - mean heterozygous-locus count per individual (diploid only)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from genetic_load.trait import GeneticFitnessTrait


@dataclass
class GeneticLoadDiagnostics:
    """Genetic-load summary for one population in one generation."""
    n_individuals: int = 0
    mean_fitness: float = 1.0
    var_fitness: float = 0.0
    n_lethal: int = 0
    mean_mutations: float = 0.0
    mean_heterozygous_loci: float = 0.0


def compute_genetic_load_diagnostics(
    traits: Sequence[GeneticFitnessTrait],
) -> GeneticLoadDiagnostics:
    """Compute all genetic-load summary statistics for a population.

    Args:
        traits: One trait per living individual (same species trait).

    Returns:
        GeneticLoadDiagnostics; defaults if ``traits`` is empty.
    """
    n = len(traits)
    diag = GeneticLoadDiagnostics(n_individuals=n)
    if n == 0:
        return diag

    fitness = np.array([t.express() for t in traits], dtype=np.float64)
    diag.mean_fitness = float(fitness.mean())
    diag.var_fitness = float(fitness.var())
    diag.n_lethal = int(np.sum(fitness <= 0.0))
    diag.mean_mutations = float(np.mean([t.count_mutations() for t in traits]))

    if traits[0].ploidy == 2:
        diag.mean_heterozygous_loci = float(
            np.mean([t.count_heterozygote_loci() for t in traits])
        )

    return diag
