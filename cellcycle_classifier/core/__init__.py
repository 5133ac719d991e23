"""Core computational modules for cellcycle-classifier.

- classification: marker panel alignment, classifier invocation,
  state decisions, threshold sweep and module scores
"""
