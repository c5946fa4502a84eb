"""psearch - Probabilistic multi-source search core.

Parses free-text queries with boolean, proximity and boost operators,
scores documents from pluggable sources with BM25, and folds the result
together with independent priors into a ranked posterior.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
