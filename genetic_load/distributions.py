"""Parameterised coefficient sampler for genetic-load mutations.

One dispatch over DistributionType serves both call sites:
  - selection coefficients s (UNIFORM trusted; others redrawn until the
    species validity predicate accepts them)
  - dominance coefficients h (NORMAL redrawn until h > 0; SCALED ties the
    upper bound of h to s)

SCALED dominance:
    h ~ U(0, exp(k · s)),  k = −ln(2 · 0.36) / 0.05 ≈ 6.57

The bound grows with s: at s = 0 it is 1, at s = 0.05 it is 1/0.72.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Mapping, Optional

from genetic_load.errors import ConfigurationError
from genetic_load.rng import RandomService
from genetic_load.types import DistributionType


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

SCALED_DOMINANCE_RATE: float = -math.log(2 * 0.36) / 0.05

REQUIRED_PARAMS: Dict[DistributionType, FrozenSet[str]] = {
    DistributionType.UNIFORM: frozenset({'min', 'max'}),
    DistributionType.NORMAL:  frozenset({'mean', 'sd'}),
    DistributionType.GAMMA:   frozenset({'shape', 'scale'}),
    DistributionType.NEGEXP:  frozenset({'mean'}),
    DistributionType.SCALED:  frozenset(),
}

SELECTION_FAMILIES: FrozenSet[DistributionType] = frozenset({
    DistributionType.UNIFORM,
    DistributionType.NORMAL,
    DistributionType.GAMMA,
    DistributionType.NEGEXP,
})

DOMINANCE_FAMILIES: FrozenSet[DistributionType] = SELECTION_FAMILIES | {
    DistributionType.SCALED,
}


# ═══════════════════════════════════════════════════════════════════════
# DESCRIPTOR
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DistributionSpec:
    """A distribution family plus its named parameters (read-only)."""
    family: DistributionType
    params: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'params', MappingProxyType(dict(self.params)))

    def __hash__(self) -> int:
        return hash((self.family, tuple(sorted(self.params.items()))))

    @classmethod
    def from_section(cls, section) -> "DistributionSpec":
        """Build from a config DistributionSection (type string + params)."""
        family = DistributionType.parse(section.type)
        params = {str(k): float(v) for k, v in (section.params or {}).items()}
        return cls(family=family, params=params)

    def __getitem__(self, name: str) -> float:
        return self.params[name]


def validate_distribution(
    spec: DistributionSpec,
    role: str,
    allowed: FrozenSet[DistributionType] = DOMINANCE_FAMILIES,
) -> None:
    """Check the family is allowed for ``role`` and its parameters are present.

    Args:
        spec: Distribution descriptor.
        role: Name used in error messages (e.g. 'mutation', 'dominance').
        allowed: Families permitted for this role.

    Raises:
        ConfigurationError: Unknown family, or a required parameter missing.
    """
    if spec.family not in allowed:
        names = '/'.join(f.name.lower() for f in sorted(allowed))
        raise ConfigurationError(
            f"{role} distribution: {spec.family.name.lower()} is not allowed, "
            f"must be {names}"
        )
    missing = sorted(REQUIRED_PARAMS[spec.family] - set(spec.params))
    if missing:
        raise ConfigurationError(
            f"{role} distribution set to {spec.family.name.lower()} so "
            f"parameters must contain one {missing[0]!r} value "
            f"(missing: {', '.join(missing)})"
        )


# ═══════════════════════════════════════════════════════════════════════
# SAMPLING
# ═══════════════════════════════════════════════════════════════════════


def scaled_dominance_max(selection_coef: float) -> float:
    """Upper bound of the SCALED dominance draw for a given s."""
    return math.exp(SCALED_DOMINANCE_RATE * selection_coef)


def _draw_once(
    spec: DistributionSpec,
    rng: RandomService,
    selection_coef: Optional[float],
) -> float:
    family = spec.family
    if family == DistributionType.UNIFORM:
        return rng.uniform(spec['min'], spec['max'])
    if family == DistributionType.NORMAL:
        return rng.normal(spec['mean'], spec['sd'])
    if family == DistributionType.GAMMA:
        return rng.gamma(spec['shape'], spec['scale'])
    if family == DistributionType.NEGEXP:
        return rng.neg_exp(spec['mean'])
    if family == DistributionType.SCALED:
        if selection_coef is None:
            raise ConfigurationError(
                "scaled distribution requires a selection coefficient"
            )
        return rng.uniform(0.0, scaled_dominance_max(selection_coef))
    raise ConfigurationError(f"unknown distribution type {family!r}")


def draw(
    spec: DistributionSpec,
    rng: RandomService,
    accept: Optional[Callable[[float], bool]] = None,
    selection_coef: Optional[float] = None,
) -> float:
    """Draw one value from ``spec``, redrawing while ``accept`` rejects it.

    Args:
        spec: Distribution descriptor (validated beforehand).
        rng: Random service.
        accept: Optional predicate; None accepts the first draw.
        selection_coef: s, required for SCALED.

    Returns:
        Accepted draw.
    """
    value = _draw_once(spec, rng, selection_coef)
    if accept is None:
        return value
    while not accept(value):
        value = _draw_once(spec, rng, selection_coef)
    return value


def draw_selection_coef(
    spec: DistributionSpec,
    rng: RandomService,
    is_valid: Callable[[float], bool],
) -> float:
    """Draw a selection coefficient for a new mutation.

    UNIFORM bounds are trusted to lie inside the valid range and are not
    filtered. NORMAL, GAMMA and NEGEXP are redrawn until ``is_valid``.

    Raises:
        ConfigurationError: Family not usable for selection coefficients.
    """
    if spec.family == DistributionType.UNIFORM:
        return draw(spec, rng)
    if spec.family in SELECTION_FAMILIES:
        return draw(spec, rng, accept=is_valid)
    raise ConfigurationError(
        f"wrong distribution type for genetic load mutation model: "
        f"{spec.family.name.lower()}, must be uniform/normal/gamma/negexp"
    )


def _positive(h: float) -> bool:
    return h > 0.0


def draw_dominance_coef(
    spec: DistributionSpec,
    rng: RandomService,
    selection_coef: float,
) -> float:
    """Draw a dominance coefficient for a mutation with selection ``selection_coef``.

    Raises:
        ConfigurationError: Family not usable for dominance coefficients.
    """
    if spec.family == DistributionType.NORMAL:
        return draw(spec, rng, accept=_positive)
    if spec.family in DOMINANCE_FAMILIES:
        return draw(spec, rng, selection_coef=selection_coef)
    raise ConfigurationError(
        f"wrong distribution type for genetic load dominance model: "
        f"{spec.family.name.lower()}, must be uniform/normal/gamma/negexp/scaled"
    )
