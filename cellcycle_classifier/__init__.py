"""cellcycle-classifier: cell-cycle state calls for single-cell RNA-seq data.

This package provides tools for:
- Aligning expression data onto a pretrained classifier's marker panel
- Predicting per-cell cell-cycle state probabilities
- Thresholded, optionally collapsed state calls (Unknown below threshold)
- Threshold sweeps characterizing the effect of the cutoff
- Cell-cycle module scores for regressing out the cell cycle

Example usage:
    >>> from cellcycle_classifier.core.classification import (
    ...     CellCycleEngine, DenseNetworkClassifier,
    ...     load_class_labels, load_marker_panel,
    ... )
    >>>
    >>> panel = load_marker_panel("genes.csv", species="human", gene_id="ensembl")
    >>> labels = load_class_labels("classes.txt")
    >>> engine = CellCycleEngine(panel, labels, DenseNetworkClassifier.from_npz("weights.npz"))
    >>> result = engine.predict(adata)
    >>>
    >>> # Re-decide with a stricter threshold, no classifier call
    >>> engine.adjust_threshold(adata, threshold=0.7)
"""

__version__ = "0.1.0"
