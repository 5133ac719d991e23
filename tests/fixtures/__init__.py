"""Test fixtures for cellcycle-classifier.

Provides mock data generators and test utilities.
"""

from .mock_adata import (
    create_counts_adata,
    create_dense_classifier,
    create_probability_frame,
    create_random_probabilities,
    gene_ids,
    write_class_labels,
    write_classifier_weights,
    write_gene_table,
)

__all__ = [
    "create_counts_adata",
    "create_dense_classifier",
    "create_probability_frame",
    "create_random_probabilities",
    "gene_ids",
    "write_class_labels",
    "write_classifier_weights",
    "write_gene_table",
]
