"""depextract: dependency graph validation for directories of mod JARs."""

__version__ = "0.1.0"
