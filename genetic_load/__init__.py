"""genetic_load: Genetic-fitness (genetic load) traits for individual-based models.

Per-individual sparse genome of deleterious and beneficial mutations:
  - Mutation sampling from uniform / normal / gamma / negative-exponential
    selection-coefficient distributions
  - Dominance coefficients from the same families or scaled to s
  - Haploid passthrough and diploid recombination-walk inheritance
  - Multiplicative, dominance-weighted fitness expression
"""

__version__ = "0.1.0"
