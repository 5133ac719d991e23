"""Expression normalization feeding the feature aligner.

Two steps sit upstream of alignment:

- optional variance-stabilizing normalization of raw counts with analytic
  Pearson residuals (scanpy's counterpart of SCTransform), computed over
  all genes so that as many panel genes as possible are retained
- per-gene z-scoring across cells of the panel genes actually present
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional, Sequence

import anndata as ad
import numpy as np
import pandas as pd
import scanpy as sc
from scipy import sparse


def normalize_residuals(
    adata: ad.AnnData,
    layer: Optional[str] = None,
    theta: float = 100.0,
    clip: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> ad.AnnData:
    """Return a copy of ``adata`` with Pearson residuals in ``X``.

    Parameters
    ----------
    adata : ad.AnnData
        Raw counts (cells x genes). Not modified.
    layer : str, optional
        Layer holding counts. Default: ``X``
    theta : float
        Negative binomial overdispersion parameter
    clip : float, optional
        Residual clipping bound (scanpy default: sqrt(n_cells))

    Returns
    -------
    ad.AnnData
        Copy with residuals in ``X``
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if layer is not None and layer not in adata.layers:
        raise ValueError(f"Counts layer '{layer}' not found in AnnData.layers")

    counts = adata.layers[layer] if layer is not None else adata.X
    if sparse.issparse(counts):
        min_count = counts.min() if counts.nnz else 0
    else:
        min_count = np.nanmin(counts) if counts.size else 0
    if min_count < 0:
        raise ValueError("Pearson residuals require non-negative counts")

    normalized = ad.AnnData(
        X=counts.copy(),
        obs=adata.obs[[]].copy(),
        var=adata.var[[]].copy(),
    )
    logger.info(
        "  Computing Pearson residuals on %d cells x %d genes (theta=%.1f)",
        normalized.n_obs,
        normalized.n_vars,
        theta,
    )
    sc.experimental.pp.normalize_pearson_residuals(normalized, theta=theta, clip=clip)
    return normalized


def expression_frame(
    adata: ad.AnnData,
    genes: Sequence[str],
    layer: Optional[str] = None,
) -> pd.DataFrame:
    """Dense genes x cells frame of the requested genes present in ``adata``.

    Genes absent from ``adata.var_names`` are skipped; the result keeps
    the order of ``genes``.
    """
    if layer is not None and layer not in adata.layers:
        raise ValueError(f"Layer '{layer}' not found in AnnData.layers")
    if not adata.var_names.is_unique:
        raise ValueError(
            "AnnData.var_names are not unique; call adata.var_names_make_unique() first"
        )

    var_index = {name: idx for idx, name in enumerate(adata.var_names.astype(str))}
    present = [g for g in genes if g in var_index]
    idxs = [var_index[g] for g in present]

    matrix = adata.layers[layer] if layer is not None else adata.X
    matrix = matrix[:, idxs]
    matrix = matrix.toarray() if sparse.issparse(matrix) else np.asarray(matrix)

    return pd.DataFrame(
        matrix.T.astype(float),
        index=pd.Index(present, name="gene"),
        columns=pd.Index(adata.obs_names.astype(str), name="cell"),
    )


def scale_genes(frame: pd.DataFrame) -> pd.DataFrame:
    """Z-score each gene (row) across cells.

    Uses the sample standard deviation. Genes with zero or undefined
    variance become NaN; the aligner floors those to 0.
    """
    if frame.empty:
        return frame.astype(float)

    values = frame.to_numpy(dtype=float)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        with np.errstate(divide="ignore", invalid="ignore"):
            mean = np.nanmean(values, axis=1, keepdims=True)
            std = np.nanstd(values, axis=1, ddof=1, keepdims=True)
            scaled = (values - mean) / std
    return pd.DataFrame(scaled, index=frame.index, columns=frame.columns)
