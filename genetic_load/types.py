"""Core data types for genetic_load.

This module is the SINGLE SOURCE OF TRUTH for:
  - DistributionType, TraitType, ExpressionType, Sex enumerations
  - Allele: immutable (selection, dominance) value object
  - WILD_TYPE: the shared no-effect allele used at every unmutated locus
  - GeneticState: locus position → per-copy allele slots

Allele slots hold an Allele, or None while a diploid offspring has received
its maternal copy but not yet its paternal copy. ``resolve_allele()`` maps
an empty slot to WILD_TYPE; every reader goes through it.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

from genetic_load.errors import ConfigurationError


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class DistributionType(IntEnum):
    """Distribution families for selection and dominance coefficients.

    Required parameters:
      UNIFORM  →  min, max
      NORMAL   →  mean, sd
      GAMMA    →  shape, scale
      NEGEXP   →  mean
      SCALED   →  (none; dominance only, h scaled to s)
    """
    UNIFORM = 0
    NORMAL  = 1
    GAMMA   = 2
    NEGEXP  = 3
    SCALED  = 4

    @classmethod
    def parse(cls, value) -> "DistributionType":
        """Parse a YAML spelling (or an existing member) into a family."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace('-', '_')
            if key in _DISTRIBUTION_ALIASES:
                return _DISTRIBUTION_ALIASES[key]
        raise ConfigurationError(
            f"unknown distribution type {value!r}, must be one of "
            f"uniform/normal/gamma/negexp/scaled"
        )


_DISTRIBUTION_ALIASES = {
    'uniform': DistributionType.UNIFORM,
    'normal': DistributionType.NORMAL,
    'gaussian': DistributionType.NORMAL,
    'gamma': DistributionType.GAMMA,
    'negexp': DistributionType.NEGEXP,
    'neg_exp': DistributionType.NEGEXP,
    'negative_exponential': DistributionType.NEGEXP,
    'exponential': DistributionType.NEGEXP,
    'scaled': DistributionType.SCALED,
}


class TraitType(IntEnum):
    """Trait kinds a species can carry.

    Only the GENETIC_LOAD kinds are implemented here; a species may carry
    up to five independent genetic-load traits.
    """
    NEUTRAL       = 0
    DISPERSAL     = 1
    GENETIC_LOAD1 = 2
    GENETIC_LOAD2 = 3
    GENETIC_LOAD3 = 4
    GENETIC_LOAD4 = 5
    GENETIC_LOAD5 = 6


GENETIC_LOAD_TRAITS = (
    TraitType.GENETIC_LOAD1,
    TraitType.GENETIC_LOAD2,
    TraitType.GENETIC_LOAD3,
    TraitType.GENETIC_LOAD4,
    TraitType.GENETIC_LOAD5,
)


class ExpressionType(IntEnum):
    """How a genotype is folded into a phenotype."""
    MULTIPLICATIVE = 0   # fitness = Π (1 − h·sA − (1−h)·sB)


class Sex(IntEnum):
    """Parental role; doubles as the allele slot index in diploid state."""
    FEM = 0   # maternal copy
    MAL = 1   # paternal copy


# ═══════════════════════════════════════════════════════════════════════
# ALLELES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class Allele:
    """A mutation's effect at one chromosome copy of a locus.

    Equality is identity: two alleles drawn independently are different
    alleles even when their coefficients coincide.

    Attributes:
        selection_coef: s; positive is deleterious, negative beneficial.
        dominance_coef: h; weight of this allele at a heterozygous locus.
    """
    selection_coef: float
    dominance_coef: float


WILD_TYPE = Allele(0.0, 0.0)

GeneticState = Dict[int, List[Optional[Allele]]]


def resolve_allele(slot: Optional[Allele]) -> Allele:
    """Return the allele in a slot, substituting WILD_TYPE for an empty slot."""
    return WILD_TYPE if slot is None else slot
