"""Shared fixtures for genetic_load tests."""

import numpy as np
import pytest

from genetic_load.config import SpeciesTrait
from genetic_load.distributions import DistributionSpec
from genetic_load.rng import RandomService
from genetic_load.types import DistributionType


@pytest.fixture
def rng():
    return RandomService(np.random.default_rng(42))


@pytest.fixture
def make_species_trait():
    """Factory for SpeciesTrait with small, test-friendly defaults."""

    def _make(
        ploidy=2,
        positions=(5, 15, 35),
        mutation_rate=0.01,
        mutation=None,
        dominance=None,
        selection_min=-1.0,
        selection_max=1.0,
    ):
        if mutation is None:
            mutation = DistributionSpec(
                DistributionType.GAMMA, {'shape': 0.4, 'scale': 0.1}
            )
        if dominance is None:
            dominance = DistributionSpec(DistributionType.SCALED)
        return SpeciesTrait(
            ploidy=ploidy,
            positions=tuple(positions),
            mutation_rate=mutation_rate,
            mutation=mutation,
            dominance=dominance,
            selection_min=selection_min,
            selection_max=selection_max,
        )

    return _make


@pytest.fixture
def diploid_species(make_species_trait):
    return make_species_trait(ploidy=2)


@pytest.fixture
def haploid_species(make_species_trait):
    return make_species_trait(ploidy=1)
