"""Tests for genetic_load.model — multi-generation simulation driver."""

import numpy as np
import pytest

from genetic_load.config import DistributionSection, GeneticLoadSection, default_config
from genetic_load.model import (
    GeneticLoadSimResult,
    individual_fitness,
    initialize_population,
    next_generation,
    run_simulation,
)
from genetic_load.rng import RandomService
from genetic_load.types import WILD_TYPE, Allele


def small_config(n_generations=5, n_populations=2, population_size=20, seed=7):
    config = default_config()
    config.simulation.n_generations = n_generations
    config.simulation.n_populations = n_populations
    config.simulation.population_size = population_size
    config.simulation.seed = seed
    config.genetic_load[0].n_loci = 20
    config.genetic_load[0].mutation_rate = 0.01
    return config


# ═══════════════════════════════════════════════════════════════════════
# POPULATION OPERATIONS
# ═══════════════════════════════════════════════════════════════════════


class TestPopulation:
    def test_founders_are_wild_type(self, diploid_species, rng):
        population = initialize_population([diploid_species], 5, rng)
        assert len(population) == 5
        for individual in population:
            assert len(individual) == 1
            assert individual_fitness(individual) == 1.0

    def test_founders_carry_one_trait_per_species_trait(self, make_species_trait, rng):
        species = [make_species_trait(), make_species_trait(ploidy=1)]
        individual = initialize_population(species, 1, rng)[0]
        assert [t.ploidy for t in individual] == [2, 1]

    def test_individual_fitness_is_product(self, make_species_trait, rng):
        species = [make_species_trait(positions=(1,)), make_species_trait(positions=(1,))]
        a, b = initialize_population(species, 1, rng)[0]
        a._genes[1] = [Allele(0.2, 0.5), Allele(0.2, 0.5)]
        b._genes[1] = [Allele(0.5, 0.5), Allele(0.5, 0.5)]
        assert individual_fitness((a, b)) == pytest.approx(0.8 * 0.5)

    def test_next_generation_keeps_size(self, diploid_species):
        rng = RandomService.from_seed(71)
        population = initialize_population([diploid_species], 10, rng)
        offspring = next_generation(population, rng, 100, 0.01)
        assert len(offspring) == 10
        assert all(ind[0].species_trait is diploid_species for ind in offspring)

    def test_lethal_individuals_never_parent(self, make_species_trait):
        species = make_species_trait(positions=(1,))
        rng = RandomService.from_seed(72)
        population = initialize_population([species], 6, rng)
        for individual in population[1:]:
            individual[0]._genes[1] = [Allele(1.0, 0.5), Allele(1.0, 0.5)]
        survivor_allele = Allele(0.1, 0.5)
        population[0][0]._genes[1] = [survivor_allele, survivor_allele]

        offspring = next_generation(population, rng, 10, 0.0)
        for individual in offspring:
            assert individual[0].genes[1] == [survivor_allele, survivor_allele]

    def test_all_lethal_is_extinction(self, make_species_trait, rng):
        species = make_species_trait(positions=(1,))
        population = initialize_population([species], 3, rng)
        for individual in population:
            individual[0]._genes[1] = [Allele(1.0, 0.5), WILD_TYPE]
        assert next_generation(population, rng, 10, 0.0) == []

    def test_haploid_traits_take_no_father(self, make_species_trait):
        species = [make_species_trait(), make_species_trait(ploidy=1)]
        rng = RandomService.from_seed(73)
        population = initialize_population(species, 4, rng)
        offspring = next_generation(population, rng, 100, 0.05)
        assert all(len(ind[1].genes[5]) == 1 for ind in offspring)


# ═══════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════


class TestRunSimulation:
    def test_result_shapes(self):
        result = run_simulation(small_config())
        assert isinstance(result, GeneticLoadSimResult)
        assert result.mean_fitness.shape == (2, 1, 5)
        assert result.mean_individual_fitness.shape == (2, 5)
        assert result.seed == 7
        assert set(result.rng_state) >= {'global', 'pop_0', 'pop_1'}

    def test_fitness_in_range(self):
        result = run_simulation(small_config())
        assert np.all(result.mean_fitness <= 2.0)
        assert np.all(result.mean_fitness >= 0.0)
        assert np.all(result.extinction_generation == -1)

    def test_mutations_accumulate(self):
        config = small_config(n_generations=10, n_populations=1)
        config.genetic_load[0].mutation_rate = 0.05
        result = run_simulation(config)
        assert result.mean_mutations[0, 0, -1] > 0.0

    def test_no_mutation_no_load(self):
        config = small_config()
        config.genetic_load[0].mutation_rate = 0.0
        result = run_simulation(config)
        assert np.all(result.mean_fitness == 1.0)
        assert np.all(result.mean_mutations == 0.0)

    def test_reproducible_with_seed(self):
        r1 = run_simulation(small_config(seed=11))
        r2 = run_simulation(small_config(seed=11))
        np.testing.assert_array_equal(r1.mean_fitness, r2.mean_fitness)
        np.testing.assert_array_equal(r1.mean_mutations, r2.mean_mutations)

    def test_population_streams_independent(self):
        """Adding a population doesn't change population 0's trajectory."""
        config = small_config(n_populations=1)
        config.genetic_load[0].mutation_rate = 0.05
        one = run_simulation(config)
        config.simulation.n_populations = 3
        three = run_simulation(config)
        np.testing.assert_array_equal(one.mean_fitness[0], three.mean_fitness[0])

    def test_multiple_traits(self):
        config = small_config(n_populations=1)
        second = GeneticLoadSection(
            ploidy=1,
            n_loci=10,
            mutation_rate=0.02,
            mutation=DistributionSection("uniform", {'min': 0.0, 'max': 0.1}),
            dominance=DistributionSection("uniform", {'min': 0.0, 'max': 1.0}),
            selection_min=0.0,
        )
        config.genetic_load.append(second)
        result = run_simulation(config)
        assert result.n_traits == 2
        assert np.all(result.mean_heterozygous_loci[0, 1] == 0.0)

    def test_lethal_mutations_drive_extinction(self):
        config = small_config(n_generations=5, n_populations=1, population_size=5)
        config.genetic_load[0].mutation_rate = 1.0
        config.genetic_load[0].mutation = DistributionSection("uniform", {'min': 1.0, 'max': 1.0})
        config.genetic_load[0].dominance = DistributionSection("uniform", {'min': 0.5, 'max': 0.5})
        config.genetic_load[0].selection_min = 0.0
        result = run_simulation(config)
        assert result.extinction_generation[0] == 0
        assert result.n_lethal[0, 0, 0] == 5
        assert np.all(np.isnan(result.mean_fitness[0, 0, 1:]))

    def test_progress_callback(self):
        calls = []
        run_simulation(small_config(n_generations=3), lambda g, n: calls.append((g, n)))
        assert calls == [(0, 3), (1, 3), (2, 3)]

    def test_zero_generations(self):
        result = run_simulation(small_config(n_generations=0))
        assert result.mean_fitness.shape == (2, 1, 0)
        assert np.all(result.extinction_generation == -1)
