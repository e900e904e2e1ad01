"""Story point estimation.

This package provides:
- The complexity keyword lexicon and keyword analyzer
- A similarity-based estimation engine over one collection of history
- A statistical model built from closed issues across platforms

None of the estimators train or persist weights; every model is rebuilt
from the issues at hand.
"""
