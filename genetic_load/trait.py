"""Genetic-fitness (genetic load) trait.

One instance per individual per genetic-load trait. Owns the individual's
genetic state (locus position → ``ploidy`` allele slots) and implements:

  - mutate():        binomial number of new mutations per chromosome copy
  - inherit_genes(): haploid passthrough / diploid recombination walk
  - express():       multiplicative, dominance-weighted fitness

Fitness at one locus with alleles (sA, hA) and (sB, hB):

    hL = hA / (hA + hB)          (0 if hA + hB == 0)
    w  = 1 − hL·sA − (1 − hL)·sB

Haploid individuals use (sB, hB) = (0, 0), so w = 1 − sA whenever hA > 0.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import List, Mapping, Optional

from genetic_load.config import SpeciesTrait
from genetic_load.distributions import draw_dominance_coef, draw_selection_coef
from genetic_load.errors import (
    ConfigurationError,
    GeneticIntegrityError,
    LocusNotFoundError,
)
from genetic_load.inheritance import strategy_for_ploidy
from genetic_load.rng import RandomService
from genetic_load.types import (
    GENETIC_LOAD_TRAITS,
    WILD_TYPE,
    Allele,
    GeneticState,
    TraitType,
    resolve_allele,
)

logger = logging.getLogger(__name__)


class GeneticFitnessTrait:
    """Genetic load carried by one individual.

    Args:
        species_trait: Species-level settings, shared between individuals.
        rng: Random service used by mutate().
        initialise: If True, every configured locus starts as wild type
            (founders). If False, the state starts empty and is filled by
            inherit_genes() (offspring).

    Raises:
        ConfigurationError: If species_trait is not a valid configuration.
    """

    def __init__(
        self,
        species_trait: SpeciesTrait,
        rng: RandomService,
        initialise: bool = True,
    ):
        species_trait.validate()
        self._species_trait = species_trait
        self._rng = rng
        self._inheritance = strategy_for_ploidy(species_trait.ploidy)
        self._genes: GeneticState = {}
        if initialise:
            self._initialise()

    def _initialise(self) -> None:
        ploidy = self._species_trait.ploidy
        for position in self._species_trait.positions:
            self._genes[position] = [WILD_TYPE] * ploidy

    def clone(self) -> "GeneticFitnessTrait":
        """Return an empty trait sharing this one's configuration and strategy.

        The genetic state is not copied; fill it with inherit_genes().
        """
        new = GeneticFitnessTrait.__new__(GeneticFitnessTrait)
        new._species_trait = self._species_trait
        new._rng = self._rng
        new._inheritance = self._inheritance
        new._genes = {}
        return new

    # ── accessors ─────────────────────────────────────────────────────

    @property
    def species_trait(self) -> SpeciesTrait:
        return self._species_trait

    @property
    def ploidy(self) -> int:
        return self._species_trait.ploidy

    @property
    def genes(self) -> Mapping[int, List[Optional[Allele]]]:
        """Read-only view of position → allele slots."""
        return MappingProxyType(self._genes)

    @property
    def inheritance(self):
        return self._inheritance

    # ── mutation ──────────────────────────────────────────────────────

    def mutate(self) -> int:
        """Apply this generation's mutations in place.

        For each chromosome copy, the number of mutating loci is
        Binomial(n_positions, mutation_rate); those loci are sampled
        without replacement and each receives a freshly drawn allele,
        replacing wild type or any earlier mutation.

        Returns:
            Number of alleles replaced across all copies.

        Raises:
            GeneticIntegrityError: A sampled position is missing from the state.
        """
        st = self._species_trait
        n_positions = st.n_positions
        total = 0

        for copy in range(st.ploidy):
            n_mut = self._rng.binomial(n_positions, st.mutation_rate)
            if n_mut == 0:
                continue

            for position in self._rng.sample(st.positions, n_mut):
                slots = self._genes.get(position)
                if slots is None:
                    raise GeneticIntegrityError(
                        f"Locus {position} sampled for mutation doesn't exist."
                    )
                s = draw_selection_coef(st.mutation, self._rng, st.is_valid_trait_val)
                h = draw_dominance_coef(st.dominance, self._rng, s)
                slots[copy] = Allele(s, h)
            total += n_mut

        if total:
            logger.debug("mutate: %d new alleles over %d copies", total, st.ploidy)
        return total

    # ── inheritance ───────────────────────────────────────────────────

    def inherit_genes(
        self,
        from_mother: bool,
        parent_trait: "GeneticFitnessTrait",
        recombination_positions=(),
        starting_chromosome: int = 0,
    ) -> None:
        """Fill this (offspring) trait from one parent's trait.

        Called once per parent; for diploid species the mother must come
        first. Haploid species ignore every argument but ``parent_trait``.

        Raises:
            GeneticIntegrityError: parent_trait is not a genetic-load trait,
                its ploidy or positions differ from this trait's, or the
                diploid walk finds a locus in the wrong state.
        """
        if not isinstance(parent_trait, GeneticFitnessTrait):
            raise GeneticIntegrityError(
                f"cannot inherit genetic load from {type(parent_trait).__name__}"
            )
        parent_st = parent_trait._species_trait
        if parent_st is not self._species_trait:
            if parent_st.ploidy != self.ploidy:
                raise GeneticIntegrityError(
                    f"cannot inherit from a ploidy-{parent_st.ploidy} parent "
                    f"into a ploidy-{self.ploidy} trait"
                )
            if parent_st.positions != self._species_trait.positions:
                raise GeneticIntegrityError(
                    "cannot inherit from a parent with different locus positions"
                )
        self._inheritance.inherit(
            self._genes,
            from_mother,
            parent_trait._genes,
            recombination_positions,
            starting_chromosome,
        )

    # ── expression ────────────────────────────────────────────────────

    def express(self) -> float:
        """Multiplicative fitness over all loci (1.0 for an unmutated genome)."""
        haploid = self._species_trait.ploidy == 1
        fitness = 1.0

        for position in sorted(self._genes):
            slots = self._genes[position]
            allele_a = resolve_allele(slots[0])
            s_a = allele_a.selection_coef
            h_a = allele_a.dominance_coef
            if haploid:
                s_b = 0.0
                h_b = 0.0
            else:
                allele_b = resolve_allele(slots[1])
                s_b = allele_b.selection_coef
                h_b = allele_b.dominance_coef

            sum_dom = h_a + h_b
            h_locus = 0.0 if sum_dom == 0.0 else h_a / sum_dom
            fitness *= 1.0 - h_locus * s_a - (1.0 - h_locus) * s_b

        return fitness

    # ── queries ───────────────────────────────────────────────────────

    def _slots(self, position: int, what: str) -> List[Optional[Allele]]:
        slots = self._genes.get(position)
        if slots is None:
            raise LocusNotFoundError(
                f"Genetic load locus {position} queried for {what} does not exist."
            )
        return slots

    def _copy_index(self, chromosome: int) -> int:
        if chromosome not in range(self.ploidy):
            raise GeneticIntegrityError(
                f"chromosome copy {chromosome} does not exist for ploidy {self.ploidy}."
            )
        return chromosome

    def is_heterozygote_at_locus(self, position: int) -> bool:
        """True if the two copies hold different allele objects.

        Identity, not value, comparison. Haploid loci are compared against
        an absent second copy, i.e. wild type.

        Raises:
            LocusNotFoundError: position is not in the genetic state.
        """
        return _is_heterozygous(self._slots(position, "heterozygosity"))

    def count_heterozygote_loci(self) -> int:
        """Number of loci whose two copies hold different allele objects."""
        return sum(_is_heterozygous(slots) for slots in self._genes.values())

    def get_allele_value_at_locus(self, chromosome: int, position: int) -> float:
        """Selection coefficient at one copy of a locus.

        Raises:
            LocusNotFoundError: position is not in the genetic state.
            GeneticIntegrityError: chromosome is not a copy index below ploidy.
        """
        slots = self._slots(position, "its allele value")
        return resolve_allele(slots[self._copy_index(chromosome)]).selection_coef

    def get_dominance_value_at_locus(self, chromosome: int, position: int) -> float:
        """Dominance coefficient at one copy of a locus.

        Raises:
            LocusNotFoundError: position is not in the genetic state.
            GeneticIntegrityError: chromosome is not a copy index below ploidy.
        """
        slots = self._slots(position, "its dominance value")
        return resolve_allele(slots[self._copy_index(chromosome)]).dominance_coef

    def count_mutations(self) -> int:
        """Number of allele slots carrying a mutation (not wild type)."""
        return sum(
            resolve_allele(a) is not WILD_TYPE
            for slots in self._genes.values()
            for a in slots
        )

    def __repr__(self) -> str:
        return (
            f"GeneticFitnessTrait({self._species_trait.trait_type.name}, "
            f"ploidy={self.ploidy}, loci={len(self._genes)})"
        )


def _is_heterozygous(slots: List[Optional[Allele]]) -> bool:
    first = resolve_allele(slots[0])
    second = resolve_allele(slots[1]) if len(slots) > 1 else WILD_TYPE
    return first is not second


def create_trait(
    trait_type: TraitType,
    species_trait: SpeciesTrait,
    rng: RandomService,
    initialise: bool = True,
) -> GeneticFitnessTrait:
    """Build the trait instance for ``trait_type``.

    Raises:
        ConfigurationError: trait_type is not a genetic-load kind.
    """
    if trait_type in GENETIC_LOAD_TRAITS:
        return GeneticFitnessTrait(species_trait, rng, initialise=initialise)
    raise ConfigurationError(
        f"trait type {TraitType(trait_type).name} is not provided by genetic_load"
    )
