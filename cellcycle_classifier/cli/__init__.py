"""Command-line interface for cellcycle-classifier.

Provides CLI commands for predicting and re-thresholding cell-cycle states.

Example Usage
-------------
    # From command line:
    cellcycle-classifier --help
    cellcycle-classifier predict -i data.h5ad -g genes.csv -c classes.txt -w weights.npz -o out.h5ad
    cellcycle-classifier adjust-threshold -i out.h5ad -t 0.8 -o strict.h5ad
    cellcycle-classifier sweep -i out.h5ad -o sweep.csv
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
