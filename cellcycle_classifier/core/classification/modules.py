"""Cell-cycle module scores for regressing out the cell cycle.

Scores each per-state gene module with ``scanpy.tl.score_genes`` so the
scores can be passed as covariates to ``sc.pp.regress_out``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import anndata as ad
import scanpy as sc

from .decision import probability_column


def module_score_name(module: str) -> str:
    """obs column holding the score of ``module`` ('/' becomes '_')."""
    return f"{probability_column(module)}_exprs"


def prepare_for_regression(
    adata: ad.AnnData,
    modules: Dict[str, Sequence[str]],
    ctrl_size: int = 50,
    n_bins: int = 25,
    use_raw: Optional[bool] = None,
    random_state: int = 0,
    logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Add one module score column per cell-cycle state to ``adata.obs``.

    Parameters
    ----------
    adata : ad.AnnData
        Normalized expression. Modified in place.
    modules : Dict[str, Sequence[str]]
        Module name -> gene identifiers (see ``load_gene_modules``)
    ctrl_size, n_bins, use_raw, random_state
        Passed to ``scanpy.tl.score_genes``

    Returns
    -------
    List[str]
        Names of the score columns written
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    var_names = set(adata.var_names.astype(str))
    written: List[str] = []
    for module, genes in modules.items():
        present = [g for g in genes if g in var_names]
        if not present:
            logger.warning(
                "Module '%s': none of its %d genes found in AnnData, skipping",
                module,
                len(genes),
            )
            continue
        if len(present) < len(genes):
            logger.debug(
                "Module '%s': %d/%d genes found", module, len(present), len(genes)
            )

        score_name = module_score_name(module)
        sc.tl.score_genes(
            adata,
            gene_list=present,
            ctrl_size=ctrl_size,
            n_bins=n_bins,
            score_name=score_name,
            random_state=random_state,
            use_raw=use_raw,
        )
        written.append(score_name)

    logger.info("Computed %d cell-cycle module scores", len(written))
    return written
