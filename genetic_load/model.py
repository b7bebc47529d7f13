"""Multi-generation genetic-load simulation.

Each population holds ``population_size`` individuals. An individual is a
tuple with one GeneticFitnessTrait per configured genetic-load trait.

Generation loop (per population, non-overlapping generations):
  1. Mutation: every trait of every individual
  2. Recording: per-trait diagnostics after mutation
  3. Selection: individual fitness is the product of its trait fitness
     values; parents are drawn with replacement in proportion to fitness
  4. Reproduction: diploid traits recombine the mother and father, haploid
     traits copy the mother

Populations draw from their own stream of the seeded RNG hierarchy, so
adding a population doesn't change the others' trajectories. A population
in which every individual has zero fitness goes extinct and records NaN
from then on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from genetic_load.config import (
    SimulationConfig,
    SpeciesTrait,
    build_species_traits,
    default_config,
)
from genetic_load.diagnostics import compute_genetic_load_diagnostics
from genetic_load.reproduction import make_offspring_trait
from genetic_load.rng import (
    RandomService,
    create_rng_hierarchy,
    get_population_rng,
    rng_state_snapshot,
)
from genetic_load.trait import GeneticFitnessTrait, create_trait

logger = logging.getLogger(__name__)

Individual = Tuple[GeneticFitnessTrait, ...]


# ═══════════════════════════════════════════════════════════════════════
# RESULT CONTAINER
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class GeneticLoadSimResult:
    """Results from a multi-population genetic-load simulation."""
    n_generations: int = 0
    n_populations: int = 0
    n_traits: int = 0
    # Per population, trait, generation: shape (n_populations, n_traits, n_generations)
    mean_fitness: Optional[np.ndarray] = None
    var_fitness: Optional[np.ndarray] = None
    mean_mutations: Optional[np.ndarray] = None
    mean_heterozygous_loci: Optional[np.ndarray] = None
    n_lethal: Optional[np.ndarray] = None
    # Per population, generation: product over traits
    mean_individual_fitness: Optional[np.ndarray] = None
    # Generation of extinction per population, -1 if still extant
    extinction_generation: Optional[np.ndarray] = None
    seed: int = 0
    rng_state: Optional[Dict[str, dict]] = None  # final stream states


# ═══════════════════════════════════════════════════════════════════════
# POPULATION OPERATIONS
# ═══════════════════════════════════════════════════════════════════════

def initialize_population(
    species_traits: Sequence[SpeciesTrait],
    population_size: int,
    rng: RandomService,
) -> List[Individual]:
    """Create wild-type founders carrying one trait per species trait."""
    return [
        tuple(create_trait(st.trait_type, st, rng) for st in species_traits)
        for _ in range(population_size)
    ]


def individual_fitness(individual: Individual) -> float:
    """Product of the fitness values of an individual's traits."""
    fitness = 1.0
    for trait in individual:
        fitness *= trait.express()
    return fitness


def next_generation(
    population: Sequence[Individual],
    rng: RandomService,
    genome_size: int,
    recombination_rate: float,
    size: Optional[int] = None,
) -> List[Individual]:
    """Produce the offspring generation by fitness-proportional parent choice.

    Mothers and fathers are drawn independently, so an individual can
    mate with itself.

    Args:
        population: Current individuals.
        rng: Population random service.
        genome_size: Number of genome positions.
        recombination_rate: Crossover probability between adjacent positions.
        size: Offspring count; defaults to the current population size.

    Returns:
        Offspring individuals, or an empty list if no individual can reproduce.
    """
    n_offspring = len(population) if size is None else size
    if n_offspring == 0 or not population:
        return []

    weights = np.clip([individual_fitness(ind) for ind in population], 0.0, None)
    if weights.sum() <= 0.0:
        return []

    mothers = rng.weighted_indices(weights, n_offspring)
    fathers = rng.weighted_indices(weights, n_offspring)

    offspring: List[Individual] = []
    for m, f in zip(mothers, fathers):
        mother, father = population[m], population[f]
        offspring.append(tuple(
            make_offspring_trait(
                mother_trait,
                father_trait if mother_trait.ploidy == 2 else None,
                rng,
                genome_size,
                recombination_rate,
            )
            for mother_trait, father_trait in zip(mother, father)
        ))
    return offspring


# ═══════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════

def run_simulation(
    config: Optional[SimulationConfig] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> GeneticLoadSimResult:
    """Run every population for ``config.simulation.n_generations`` generations.

    Args:
        config: Validated SimulationConfig; uses default if None.
        progress_callback: Optional callable(generation, n_generations).

    Returns:
        GeneticLoadSimResult with per-generation timeseries.
    """
    if config is None:
        config = default_config()

    sim_cfg = config.simulation
    genome_cfg = config.genome
    species_traits = build_species_traits(config)

    n_pops = sim_cfg.n_populations
    n_gen = sim_cfg.n_generations
    n_traits = len(species_traits)

    rngs = create_rng_hierarchy(sim_cfg.seed, n_pops)
    services = [RandomService(get_population_rng(rngs, p)) for p in range(n_pops)]
    populations = [
        initialize_population(species_traits, sim_cfg.population_size, services[p])
        for p in range(n_pops)
    ]

    shape = (n_pops, n_traits, n_gen)
    result = GeneticLoadSimResult(
        n_generations=n_gen,
        n_populations=n_pops,
        n_traits=n_traits,
        mean_fitness=np.full(shape, np.nan),
        var_fitness=np.full(shape, np.nan),
        mean_mutations=np.full(shape, np.nan),
        mean_heterozygous_loci=np.full(shape, np.nan),
        n_lethal=np.zeros(shape, dtype=np.int64),
        mean_individual_fitness=np.full((n_pops, n_gen), np.nan),
        extinction_generation=np.full(n_pops, -1, dtype=np.int64),
        seed=sim_cfg.seed,
    )

    for gen in range(n_gen):
        for p in range(n_pops):
            population = populations[p]
            if not population:
                continue

            for individual in population:
                for trait in individual:
                    trait.mutate()

            for k in range(n_traits):
                diag = compute_genetic_load_diagnostics([ind[k] for ind in population])
                result.mean_fitness[p, k, gen] = diag.mean_fitness
                result.var_fitness[p, k, gen] = diag.var_fitness
                result.mean_mutations[p, k, gen] = diag.mean_mutations
                result.mean_heterozygous_loci[p, k, gen] = diag.mean_heterozygous_loci
                result.n_lethal[p, k, gen] = diag.n_lethal
            result.mean_individual_fitness[p, gen] = float(
                np.mean([individual_fitness(ind) for ind in population])
            )

            populations[p] = next_generation(
                population,
                services[p],
                genome_cfg.genome_size,
                genome_cfg.recombination_rate,
            )
            if not populations[p]:
                result.extinction_generation[p] = gen
                logger.info("population %d extinct at generation %d", p, gen)

        logger.debug("generation %d/%d done", gen + 1, n_gen)
        if progress_callback is not None:
            progress_callback(gen, n_gen)

    result.rng_state = rng_state_snapshot(rngs)
    return result
