"""Offspring assembly for genetic-load traits.

Each gamete is built from one parent by a recombination walk:
  - number of crossovers ~ Binomial(genome_size − 1, recombination_rate)
  - crossover positions drawn without replacement from 0 .. genome_size−2
    (a crossover at p separates position p from p + 1)
  - the walk starts on a fair-coin chromosome copy

Diploid offspring inherit from the mother first, then the father.
Haploid (asexual) offspring copy their single parent.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from genetic_load.errors import GeneticIntegrityError
from genetic_load.rng import RandomService
from genetic_load.trait import GeneticFitnessTrait

logger = logging.getLogger(__name__)


def draw_recombination_positions(
    rng: RandomService,
    genome_size: int,
    recombination_rate: float,
) -> Tuple[int, ...]:
    """Draw sorted, distinct crossover positions for one gamete.

    Args:
        rng: Random service.
        genome_size: Number of genome positions.
        recombination_rate: Crossover probability between adjacent positions.

    Returns:
        Ascending tuple of breakpoint positions (possibly empty).
    """
    n_gaps = genome_size - 1
    n_cross = rng.binomial(n_gaps, recombination_rate)
    if n_cross == 0:
        return ()
    return rng.sample(range(n_gaps), n_cross)


def draw_starting_chromosome(rng: RandomService) -> int:
    """Fair choice of the parental copy the walk starts on (0 or 1)."""
    return rng.integers(0, 2)


def make_offspring_trait(
    mother: GeneticFitnessTrait,
    father: Optional[GeneticFitnessTrait],
    rng: RandomService,
    genome_size: int,
    recombination_rate: float,
) -> GeneticFitnessTrait:
    """Build an offspring trait from its parents' traits.

    Args:
        mother: Maternal trait (the only parent for haploid species).
        father: Paternal trait; must be None for haploid species.
        rng: Random service for breakpoints and starting chromosomes.
        genome_size: Number of genome positions.
        recombination_rate: Crossover probability between adjacent positions.

    Returns:
        New trait, fully populated.

    Raises:
        GeneticIntegrityError: Parents don't match the species' ploidy.
    """
    offspring = mother.clone()

    if mother.ploidy == 1:
        if father is not None:
            raise GeneticIntegrityError("haploid offspring take a single parent")
        offspring.inherit_genes(True, mother)
        return offspring

    if father is None:
        raise GeneticIntegrityError("diploid offspring require a father")
    if father.species_trait is not mother.species_trait:
        raise GeneticIntegrityError("parents carry different species traits")

    for from_mother, parent in ((True, mother), (False, father)):
        breakpoints = draw_recombination_positions(rng, genome_size, recombination_rate)
        start = draw_starting_chromosome(rng)
        offspring.inherit_genes(from_mother, parent, breakpoints, start)
        logger.debug(
            "inherit %s: %d crossovers, start copy %d",
            "mother" if from_mother else "father", len(breakpoints), start,
        )

    return offspring
