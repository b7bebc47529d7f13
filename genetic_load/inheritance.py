"""Inheritance strategies for genetic-load traits.

A trait picks one strategy from its species' ploidy when it is constructed
and keeps it for its lifetime:

  HaploidInheritance — asexual; the offspring receives the parent's state.
  DiploidInheritance — sexual; called once per parent, mother first. The
      parent's loci are walked in ascending position order while the
      active parental chromosome flips at every recombination breakpoint.

Breakpoint convention: a locus at exactly a breakpoint position still
belongs to the segment that ends at that breakpoint; the switch applies to
loci strictly beyond it.

Example (breakpoints {10, 30}, starting chromosome 0):
    locus 5  → copy 0
    locus 15 → copy 1
    locus 35 → copy 0
"""

from __future__ import annotations

from bisect import bisect_left
from typing import Iterable, List, Optional

from genetic_load.errors import GeneticIntegrityError
from genetic_load.types import Allele, GeneticState, Sex, resolve_allele


class HaploidInheritance:
    """Asexual passthrough.

    ``from_mother``, the breakpoints and the starting chromosome are
    accepted for signature symmetry with the diploid strategy and ignored.
    """

    ploidy = 1

    def inherit(
        self,
        offspring_genes: GeneticState,
        from_mother: bool,
        parent_genes: GeneticState,
        recombination_positions: Iterable[int],
        starting_chromosome: int,
    ) -> None:
        offspring_genes.clear()
        # Slot lists are copied; the Allele references are shared.
        for position, alleles in parent_genes.items():
            offspring_genes[position] = list(alleles)


class DiploidInheritance:
    """Recombination walk over one parent's loci.

    The mother call creates every locus with slot FEM filled and slot MAL
    empty; the father call fills slot MAL of loci that must already exist.
    Either expectation failing means the two calls were made out of order
    or against mismatched position sets.
    """

    ploidy = 2

    def inherit(
        self,
        offspring_genes: GeneticState,
        from_mother: bool,
        parent_genes: GeneticState,
        recombination_positions: Iterable[int],
        starting_chromosome: int,
    ) -> None:
        if starting_chromosome not in (0, 1):
            raise GeneticIntegrityError(
                f"starting chromosome must be 0 or 1, got {starting_chromosome}"
            )
        if not parent_genes:
            return

        breakpoints = sorted(recombination_positions)
        loci = sorted(parent_genes)

        # Breakpoints strictly below the first locus have already switched
        # the active copy before the walk begins.
        idx = bisect_left(breakpoints, loci[0])
        chromosome = starting_chromosome
        if idx % 2 != 0:
            chromosome = 1 - chromosome
        next_breakpoint = _breakpoint_at(breakpoints, idx)

        for locus in loci:
            while next_breakpoint is not None and locus > next_breakpoint:
                idx += 1
                next_breakpoint = _breakpoint_at(breakpoints, idx)
                chromosome = 1 - chromosome

            parent_allele = resolve_allele(parent_genes[locus][chromosome])
            if from_mother:
                self._inherit_maternal(offspring_genes, locus, parent_allele)
            else:
                self._inherit_paternal(offspring_genes, locus, parent_allele)

    @staticmethod
    def _inherit_maternal(
        offspring_genes: GeneticState,
        locus: int,
        allele: Optional[Allele],
    ) -> None:
        if locus in offspring_genes:
            raise GeneticIntegrityError(
                f"Mother-inherited locus {locus} already exists."
            )
        slots: List[Optional[Allele]] = [None, None]
        slots[Sex.FEM] = allele
        offspring_genes[locus] = slots

    @staticmethod
    def _inherit_paternal(
        offspring_genes: GeneticState,
        locus: int,
        allele: Optional[Allele],
    ) -> None:
        slots = offspring_genes.get(locus)
        if slots is None:
            raise GeneticIntegrityError(
                f"Father-inherited locus {locus} does not exist."
            )
        if slots[Sex.MAL] is not None:
            raise GeneticIntegrityError(
                f"Father-inherited locus {locus} already has a paternal allele."
            )
        slots[Sex.MAL] = allele


def _breakpoint_at(breakpoints: List[int], idx: int) -> Optional[int]:
    return breakpoints[idx] if idx < len(breakpoints) else None


HAPLOID = HaploidInheritance()
DIPLOID = DiploidInheritance()


def strategy_for_ploidy(ploidy: int):
    """Return the shared strategy instance for a ploidy (1 or 2)."""
    if ploidy == 1:
        return HAPLOID
    if ploidy == 2:
        return DIPLOID
    raise GeneticIntegrityError(f"no inheritance strategy for ploidy {ploidy}")
