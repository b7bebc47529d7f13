"""Configuration system for genetic_load.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

The YAML layer produces mutable dataclass sections; ``SpeciesTrait`` is the
frozen, validated species-level description each individual's trait holds
a reference to. Validation failures raise ConfigurationError naming the
offending field.

Example YAML:

    genome:
      genome_size: 1000
      recombination_rate: 0.001
    genetic_load:
      - ploidy: 2
        n_loci: 200
        mutation_rate: 0.001
        mutation: {type: gamma, params: {shape: 0.4, scale: 0.1}}
        dominance: {type: scaled}
"""

from __future__ import annotations

import dataclasses
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import yaml

from genetic_load.distributions import (
    DOMINANCE_FAMILIES,
    REQUIRED_PARAMS,
    SELECTION_FAMILIES,
    DistributionSpec,
    validate_distribution,
)
from genetic_load.errors import ConfigurationError
from genetic_load.types import (
    GENETIC_LOAD_TRAITS,
    DistributionType,
    ExpressionType,
    TraitType,
)

MAX_GENETIC_LOAD_TRAITS = len(GENETIC_LOAD_TRAITS)


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Top-level simulation control."""
    seed: int = 42
    n_generations: int = 100
    n_populations: int = 1
    population_size: int = 100    # Individuals per population, constant across generations


@dataclass
class GenomeSection:
    """Genome layout shared by all traits of a species."""
    genome_size: int = 1000           # Positions 0 .. genome_size-1
    recombination_rate: float = 0.001  # Crossover probability between adjacent positions


@dataclass
class DistributionSection:
    """A distribution family name and its named parameters."""
    type: str = "uniform"
    params: Dict[str, float] = field(default_factory=dict)


@dataclass
class GeneticLoadSection:
    """One genetic-load trait.

    Loci are either listed explicitly in ``positions`` or, when positions
    is None, ``n_loci`` loci are spread evenly over the genome.

    The validity window [selection_min, selection_max] is the accept
    predicate for non-uniform selection-coefficient draws. Use [0, 1] to
    forbid beneficial mutations.
    """
    ploidy: int = 2
    positions: Optional[List[int]] = None
    n_loci: int = 100
    mutation_rate: float = 0.001   # Per locus per chromosome copy per generation
    mutation: DistributionSection = field(
        default_factory=lambda: DistributionSection(
            type="gamma", params={'shape': 0.4, 'scale': 0.1}
        )
    )
    dominance: DistributionSection = field(
        default_factory=lambda: DistributionSection(type="scaled")
    )
    expression: str = "multiplicative"
    selection_min: float = -1.0
    selection_max: float = 1.0


@dataclass
class SimulationConfig:
    """Complete configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    genome: GenomeSection = field(default_factory=GenomeSection)
    genetic_load: List[GeneticLoadSection] = field(
        default_factory=lambda: [GeneticLoadSection()]
    )


# ═══════════════════════════════════════════════════════════════════════
# SPECIES-LEVEL TRAIT DESCRIPTION
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SpeciesTrait:
    """Validated, read-only species-level settings for one genetic-load trait.

    Shared by reference between every individual's trait instance. Frozen,
    so it can be read from many individuals without synchronisation.

    Raises:
        ConfigurationError: On construction, if any setting is invalid.
    """
    ploidy: int
    positions: Tuple[int, ...]
    mutation_rate: float
    mutation: DistributionSpec
    dominance: DistributionSpec
    trait_type: TraitType = TraitType.GENETIC_LOAD1
    expression_type: ExpressionType = ExpressionType.MULTIPLICATIVE
    selection_min: float = -1.0
    selection_max: float = 1.0

    def __post_init__(self):
        object.__setattr__(
            self, 'positions', tuple(sorted(int(p) for p in self.positions))
        )
        self.validate()

    def validate(self) -> None:
        """Check every setting; raise ConfigurationError on the first failure."""
        if self.ploidy not in (1, 2):
            raise ConfigurationError(f"ploidy must be 1 or 2, got {self.ploidy}")
        if self.trait_type not in GENETIC_LOAD_TRAITS:
            raise ConfigurationError(
                f"trait_type must be a genetic load trait, got {self.trait_type!r}"
            )
        if self.expression_type != ExpressionType.MULTIPLICATIVE:
            raise ConfigurationError(
                f"genetic load expression must be multiplicative, "
                f"got {self.expression_type!r}"
            )
        if len(self.positions) == 0:
            raise ConfigurationError("positions must contain at least one locus")
        if len(set(self.positions)) != len(self.positions):
            raise ConfigurationError("positions must not contain duplicates")
        if self.positions[0] < 0:
            raise ConfigurationError(
                f"positions must be non-negative, got {self.positions[0]}"
            )
        if not (0.0 <= self.mutation_rate <= 1.0):
            raise ConfigurationError(
                f"mutation_rate must be in [0, 1], got {self.mutation_rate}"
            )
        if self.selection_min > self.selection_max:
            raise ConfigurationError(
                f"selection_min ({self.selection_min}) must be <= "
                f"selection_max ({self.selection_max})"
            )
        validate_distribution(self.mutation, 'genetic load mutation', SELECTION_FAMILIES)
        validate_distribution(self.dominance, 'genetic load dominance', DOMINANCE_FAMILIES)

    @property
    def n_positions(self) -> int:
        return len(self.positions)

    def is_valid_trait_val(self, value: float) -> bool:
        """Accept predicate for drawn selection coefficients."""
        return self.selection_min <= value <= self.selection_max

    @classmethod
    def from_section(
        cls,
        section: GeneticLoadSection,
        genome_size: int,
        trait_type: TraitType = TraitType.GENETIC_LOAD1,
    ) -> "SpeciesTrait":
        """Build a SpeciesTrait from a YAML section.

        Raises:
            ConfigurationError: Invalid section (positions, families, params).
        """
        if section.positions is not None:
            positions = [int(p) for p in section.positions]
            out_of_range = [p for p in positions if p >= genome_size]
            if out_of_range:
                raise ConfigurationError(
                    f"positions must be < genome_size ({genome_size}), "
                    f"got {out_of_range[0]}"
                )
        else:
            positions = even_positions(section.n_loci, genome_size)

        expression = section.expression.strip().upper()
        if expression not in ExpressionType.__members__:
            raise ConfigurationError(
                f"expression must be 'multiplicative', got {section.expression!r}"
            )

        return cls(
            ploidy=section.ploidy,
            positions=tuple(positions),
            mutation_rate=float(section.mutation_rate),
            mutation=_distribution_spec(section.mutation, 'mutation'),
            dominance=_distribution_spec(section.dominance, 'dominance'),
            trait_type=trait_type,
            expression_type=ExpressionType[expression],
            selection_min=float(section.selection_min),
            selection_max=float(section.selection_max),
        )


def _distribution_spec(section: DistributionSection, role: str) -> DistributionSpec:
    """Parse one distribution section; errors name the offending field."""
    try:
        return DistributionSpec.from_section(section)
    except ConfigurationError as e:
        raise ConfigurationError(f"{role}.type: {e}") from e
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{role}.params: {e}") from e


def even_positions(n_loci: int, genome_size: int) -> List[int]:
    """Spread ``n_loci`` distinct positions evenly over [0, genome_size).

    Raises:
        ConfigurationError: n_loci < 1 or more loci than positions.
    """
    if n_loci < 1:
        raise ConfigurationError(f"n_loci must be >= 1, got {n_loci}")
    if n_loci > genome_size:
        raise ConfigurationError(
            f"n_loci ({n_loci}) must be <= genome_size ({genome_size})"
        )
    return [int(p) for p in np.linspace(0, genome_size - 1, n_loci).round().astype(int)]


def build_species_traits(config: SimulationConfig) -> List[SpeciesTrait]:
    """Build one SpeciesTrait per genetic-load section, in trait-type order."""
    return [
        SpeciesTrait.from_section(section, config.genome.genome_size, trait_type)
        for section, trait_type in zip(config.genetic_load, GENETIC_LOAD_TRAITS)
    ]


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values (including lists) are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _dict_to_genetic_load(data: Dict) -> GeneticLoadSection:
    data = dict(data)  # don't mutate original
    for key in ('mutation', 'dominance'):
        if isinstance(data.get(key), dict):
            data[key] = _dict_to_section(DistributionSection, data[key])
    return _dict_to_section(GeneticLoadSection, data)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections: Dict[str, Any] = {}
    section_map = {
        'simulation': SimulationSection,
        'genome': GenomeSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()

    # A single mapping is accepted as shorthand for a one-trait list
    raw_traits = data.get('genetic_load')
    if isinstance(raw_traits, dict):
        raw_traits = [raw_traits]
    if isinstance(raw_traits, list):
        sections['genetic_load'] = [
            _dict_to_genetic_load(t) for t in raw_traits if isinstance(t, dict)
        ]

    return SimulationConfig(**sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ConfigurationError on failure.

    Checks:
      - Seed, generation count and genome layout are sane
      - 1..5 genetic-load traits, each a valid SpeciesTrait
    Warns on legal but suspicious settings (very high mutation rate,
    uniform selection bounds outside the validity window, unknown
    distribution parameters).
    """
    if config.simulation.seed < 0:
        raise ConfigurationError("simulation.seed must be non-negative")
    if config.simulation.n_generations < 0:
        raise ConfigurationError("simulation.n_generations must be non-negative")
    if config.simulation.n_populations < 1:
        raise ConfigurationError("simulation.n_populations must be >= 1")
    if config.simulation.population_size < 1:
        raise ConfigurationError("simulation.population_size must be >= 1")
    if config.genome.genome_size < 1:
        raise ConfigurationError("genome.genome_size must be positive")
    if not (0.0 <= config.genome.recombination_rate <= 1.0):
        raise ConfigurationError(
            f"genome.recombination_rate must be in [0, 1], "
            f"got {config.genome.recombination_rate}"
        )

    n_traits = len(config.genetic_load)
    if not (1 <= n_traits <= MAX_GENETIC_LOAD_TRAITS):
        raise ConfigurationError(
            f"genetic_load must define 1–{MAX_GENETIC_LOAD_TRAITS} traits, "
            f"got {n_traits}"
        )

    for i, section in enumerate(config.genetic_load):
        try:
            trait = SpeciesTrait.from_section(
                section, config.genome.genome_size, GENETIC_LOAD_TRAITS[i]
            )
        except ConfigurationError as e:
            raise ConfigurationError(f"genetic_load[{i}]: {e}") from e
        _warn_suspicious(trait, i)


def _warn_suspicious(trait: SpeciesTrait, index: int) -> None:
    if trait.mutation_rate > 0.5:
        warnings.warn(
            f"genetic_load[{index}].mutation_rate is {trait.mutation_rate}; "
            f"most loci will mutate every generation",
            UserWarning,
            stacklevel=3,
        )
    mut = trait.mutation
    if mut.family == DistributionType.UNIFORM and (
        not trait.is_valid_trait_val(mut['min'])
        or not trait.is_valid_trait_val(mut['max'])
    ):
        warnings.warn(
            f"genetic_load[{index}].mutation uniform bounds "
            f"[{mut['min']}, {mut['max']}] exceed the selection window "
            f"[{trait.selection_min}, {trait.selection_max}]; uniform draws "
            f"are not filtered",
            UserWarning,
            stacklevel=3,
        )
    dom = trait.dominance
    if dom.family == DistributionType.UNIFORM and dom['min'] < 0.0:
        warnings.warn(
            f"genetic_load[{index}].dominance uniform minimum is {dom['min']}; "
            f"uniform dominance draws are not redrawn, so h can be negative",
            UserWarning,
            stacklevel=3,
        )
    for role, spec in (('mutation', trait.mutation), ('dominance', trait.dominance)):
        unknown = sorted(set(spec.params) - REQUIRED_PARAMS[spec.family])
        if unknown:
            warnings.warn(
                f"genetic_load[{index}].{role}.params: ignoring "
                f"{', '.join(unknown)} for {spec.family.name.lower()} distribution",
                UserWarning,
                stacklevel=3,
            )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ConfigurationError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, sweep_overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
