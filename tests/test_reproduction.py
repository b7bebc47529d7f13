"""Tests for genetic_load.reproduction — gamete breakpoints and offspring."""

import numpy as np
import pytest

from genetic_load.errors import GeneticIntegrityError
from genetic_load.reproduction import (
    draw_recombination_positions,
    draw_starting_chromosome,
    make_offspring_trait,
)
from genetic_load.rng import RandomService
from genetic_load.trait import GeneticFitnessTrait
from genetic_load.types import Allele, Sex


def marked_trait(species, rng, copy0_s, copy1_s):
    """Trait whose copy-0 and copy-1 alleles are distinguishable by s."""
    trait = GeneticFitnessTrait(species, rng)
    for pos in species.positions:
        trait._genes[pos] = [Allele(copy0_s, 0.5), Allele(copy1_s, 0.5)]
    return trait


# ═══════════════════════════════════════════════════════════════════════
# BREAKPOINTS
# ═══════════════════════════════════════════════════════════════════════


class TestRecombinationPositions:
    def test_zero_rate_no_breakpoints(self, rng):
        assert draw_recombination_positions(rng, 1000, 0.0) == ()

    def test_single_position_genome(self, rng):
        assert draw_recombination_positions(rng, 1, 0.5) == ()

    def test_sorted_distinct_in_range(self):
        rng = RandomService.from_seed(61)
        for _ in range(200):
            bps = draw_recombination_positions(rng, 500, 0.02)
            assert list(bps) == sorted(set(bps))
            assert all(0 <= b <= 498 for b in bps)

    def test_rate_one_breaks_every_gap(self, rng):
        assert draw_recombination_positions(rng, 10, 1.0) == tuple(range(9))

    def test_mean_count(self):
        rng = RandomService.from_seed(62)
        counts = [len(draw_recombination_positions(rng, 1001, 0.005)) for _ in range(3000)]
        assert abs(np.mean(counts) - 5.0) < 0.2


class TestStartingChromosome:
    def test_fair_coin(self):
        rng = RandomService.from_seed(63)
        draws = [draw_starting_chromosome(rng) for _ in range(4000)]
        assert set(draws) == {0, 1}
        assert abs(np.mean(draws) - 0.5) < 0.03


# ═══════════════════════════════════════════════════════════════════════
# OFFSPRING
# ═══════════════════════════════════════════════════════════════════════


class TestMakeOffspring:
    def test_diploid_slots_come_from_each_parent(self, make_species_trait):
        species = make_species_trait(positions=tuple(range(0, 100, 10)))
        rng = RandomService.from_seed(64)
        mother = marked_trait(species, rng, 0.1, 0.2)
        father = marked_trait(species, rng, 0.3, 0.4)

        for _ in range(50):
            child = make_offspring_trait(mother, father, rng, 100, 0.05)
            assert set(child.genes) == set(species.positions)
            for pos in species.positions:
                assert child.genes[pos][Sex.FEM] in mother.genes[pos]
                assert child.genes[pos][Sex.MAL] in father.genes[pos]

    def test_no_recombination_keeps_copy_blocks(self, make_species_trait):
        species = make_species_trait(positions=tuple(range(0, 100, 10)))
        rng = RandomService.from_seed(65)
        mother = marked_trait(species, rng, 0.1, 0.2)
        father = marked_trait(species, rng, 0.3, 0.4)

        child = make_offspring_trait(mother, father, rng, 100, 0.0)
        maternal = {child.get_allele_value_at_locus(Sex.FEM, p) for p in species.positions}
        paternal = {child.get_allele_value_at_locus(Sex.MAL, p) for p in species.positions}
        assert maternal in ({0.1}, {0.2})
        assert paternal in ({0.3}, {0.4})

    def test_recombination_mixes_copies(self, make_species_trait):
        species = make_species_trait(positions=tuple(range(0, 1000, 10)))
        rng = RandomService.from_seed(66)
        mother = marked_trait(species, rng, 0.1, 0.2)
        father = marked_trait(species, rng, 0.3, 0.4)

        child = make_offspring_trait(mother, father, rng, 1000, 0.01)
        maternal = {child.get_allele_value_at_locus(Sex.FEM, p) for p in species.positions}
        assert maternal == {0.1, 0.2}

    def test_offspring_shares_species_trait(self, diploid_species, rng):
        mother = GeneticFitnessTrait(diploid_species, rng)
        father = GeneticFitnessTrait(diploid_species, rng)
        child = make_offspring_trait(mother, father, rng, 100, 0.01)
        assert child.species_trait is diploid_species
        assert child.express() == 1.0

    def test_haploid_copies_single_parent(self, make_species_trait, rng):
        species = make_species_trait(ploidy=1, mutation_rate=1.0)
        mother = GeneticFitnessTrait(species, rng)
        mother.mutate()
        child = make_offspring_trait(mother, None, rng, 100, 0.5)
        for pos in species.positions:
            assert child.genes[pos][0] is mother.genes[pos][0]

    def test_haploid_rejects_father(self, haploid_species, rng):
        mother = GeneticFitnessTrait(haploid_species, rng)
        father = GeneticFitnessTrait(haploid_species, rng)
        with pytest.raises(GeneticIntegrityError, match="single parent"):
            make_offspring_trait(mother, father, rng, 100, 0.01)

    def test_diploid_requires_father(self, diploid_species, rng):
        mother = GeneticFitnessTrait(diploid_species, rng)
        with pytest.raises(GeneticIntegrityError, match="require a father"):
            make_offspring_trait(mother, None, rng, 100, 0.01)

    def test_parents_from_different_species_traits(self, make_species_trait, rng):
        mother = GeneticFitnessTrait(make_species_trait(), rng)
        father = GeneticFitnessTrait(make_species_trait(), rng)
        with pytest.raises(GeneticIntegrityError, match="different species traits"):
            make_offspring_trait(mother, father, rng, 100, 0.01)

    def test_reproducible_with_seed(self, make_species_trait):
        species = make_species_trait(positions=tuple(range(0, 100, 5)), mutation_rate=0.3)

        def run(seed):
            rng = RandomService.from_seed(seed)
            mother = GeneticFitnessTrait(species, rng)
            father = GeneticFitnessTrait(species, rng)
            mother.mutate()
            father.mutate()
            child = make_offspring_trait(mother, father, rng, 100, 0.05)
            return [
                child.get_allele_value_at_locus(c, p)
                for p in species.positions for c in (0, 1)
            ]

        assert run(7) == run(7)
