"""Command-line interface for cellcycle-classifier.

Provides CLI commands for predicting cell-cycle states, re-thresholding
stored predictions, sweeping thresholds and computing module scores.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

import click

from cellcycle_classifier import __version__


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """Setup logging for CLI commands."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    return logging.getLogger("cellcycle_classifier")


def _resolve_labels(adata, classes: Optional[str]):
    """Class labels from a file, from a previous run, or the defaults."""
    from cellcycle_classifier.core.classification import (
        DEFAULT_CLASS_LABELS,
        ClassLabelSet,
        load_class_labels,
    )
    from cellcycle_classifier.core.classification.engine import UNS_KEY

    if classes:
        return load_class_labels(classes)
    stored = adata.uns.get(UNS_KEY, {}).get("classes")
    if stored is not None and len(stored):
        return ClassLabelSet(tuple(str(c) for c in stored))
    return ClassLabelSet(DEFAULT_CLASS_LABELS)


@click.group()
@click.version_option(version=__version__, prog_name="cellcycle-classifier")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """cellcycle-classifier: cell-cycle state calls for single-cell data.

    Examples:

        # Predict states with a pretrained network
        cellcycle-classifier predict -i data.h5ad -g genes.csv -c classes.txt \\
            -w weights.npz -o predicted.h5ad

        # Re-apply a stricter threshold to stored probabilities
        cellcycle-classifier adjust-threshold -i predicted.h5ad -t 0.7 -o strict.h5ad

        # State distribution across thresholds
        cellcycle-classifier sweep -i predicted.h5ad -o sweep.csv
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["logger"] = setup_logging(verbose, debug)


@cli.command()
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="Input AnnData file (.h5ad)")
@click.option("--genes", "-g", "genes_path", required=True, type=click.Path(exists=True),
              help="Marker gene table (CSV)")
@click.option("--classes", "-c", "classes_path", required=True, type=click.Path(exists=True),
              help="Class label file, one label per line")
@click.option("--weights", "-w", "weights_path", required=True, type=click.Path(exists=True),
              help="Classifier weights (.npz with W0, b0, W1, b1, ...)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output AnnData file (.h5ad)")
@click.option("--config", type=click.Path(exists=True),
              help="Run parameters (YAML)")
@click.option("--threshold", "-t", type=float, default=None,
              help="Confidence threshold (default: 0.5)")
@click.option("--include-g0/--collapse-g0", default=None,
              help="Keep Neural G0 / G1 / Late G1 calls instead of G0/G1")
@click.option("--species", type=click.Choice(["human", "mouse"]), default=None)
@click.option("--gene-id", type=click.Choice(["ensembl", "symbol"]), default=None)
@click.option("--assay", type=click.Choice(["residuals", "data"]), default=None,
              help="Expression source: Pearson residuals or prenormalized data")
@click.option("--normalize/--no-normalize", default=None,
              help="Recompute Pearson residuals before classifying")
@click.option("--spatial/--no-spatial", default=None, help="Spatial spot data")
@click.option("--n-workers", type=int, default=None, help="Classifier worker processes")
@click.option("--summary", "summary_path", type=click.Path(),
              help="Write a YAML run summary here")
@click.option("--log-file", type=click.Path(), help="Also log to this file")
@click.pass_context
def predict(
    ctx: click.Context,
    input_path: str,
    genes_path: str,
    classes_path: str,
    weights_path: str,
    output_path: str,
    config: Optional[str],
    threshold: Optional[float],
    include_g0: Optional[bool],
    species: Optional[str],
    gene_id: Optional[str],
    assay: Optional[str],
    normalize: Optional[bool],
    spatial: Optional[bool],
    n_workers: Optional[int],
    summary_path: Optional[str],
    log_file: Optional[str],
) -> None:
    """Predict cell-cycle states and attach them to the cell metadata."""
    logger = ctx.obj["logger"]
    if log_file:
        from cellcycle_classifier.io import attach_file_log

        _, actual = attach_file_log(logger, log_file)
        click.echo(f"Logging to: {actual}")

    import anndata as ad
    from cellcycle_classifier.core.classification import (
        CellCycleEngine,
        CellCycleParams,
        DenseNetworkClassifier,
        load_class_labels,
        load_marker_panel,
    )

    params = CellCycleParams.from_yaml(Path(config)) if config else CellCycleParams()
    overrides = {
        "threshold": threshold,
        "include_g0": include_g0,
        "species": species,
        "gene_id": gene_id,
        "assay": assay,
        "do_normalize": normalize,
        "spatial": spatial,
        "n_workers": n_workers,
    }
    params = replace(params, **{k: v for k, v in overrides.items() if v is not None})
    try:
        params.check()
    except ValueError as e:
        raise click.BadParameter(str(e))

    panel = load_marker_panel(genes_path, species=params.species, gene_id=params.gene_id,
                              logger=logger)
    labels = load_class_labels(classes_path)
    classifier = DenseNetworkClassifier.from_npz(weights_path)

    logger.info(f"Loading AnnData from {input_path}...")
    adata = ad.read_h5ad(input_path)

    engine = CellCycleEngine(panel, labels, classifier, params=params, logger=logger)
    result = engine.predict(adata)

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    adata.write_h5ad(out)

    if summary_path:
        from cellcycle_classifier.io import write_run_summary

        record = {"input": str(input_path), "output": str(out), "params": params.to_dict()}
        record.update(result.summary())
        write_run_summary(summary_path, record, logger=logger)

    click.echo("Cell cycle classification complete")
    click.echo(f"Output saved to: {out}")


@cli.command("adjust-threshold")
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="AnnData file with stored probabilities (.h5ad)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output AnnData file (.h5ad)")
@click.option("--threshold", "-t", type=float, default=0.5, show_default=True)
@click.option("--include-g0/--collapse-g0", default=False, show_default=True)
@click.option("--classes", "-c", "classes_path", type=click.Path(exists=True),
              help="Class label file (default: labels stored by predict)")
@click.option("--label-col", default="cell_cycle_state", show_default=True)
@click.pass_context
def adjust_threshold(
    ctx: click.Context,
    input_path: str,
    output_path: str,
    threshold: float,
    include_g0: bool,
    classes_path: Optional[str],
    label_col: str,
) -> None:
    """Re-decide states from stored probabilities with a new threshold."""
    logger = ctx.obj["logger"]

    import anndata as ad
    from cellcycle_classifier.core.classification import adjust_cell_cycle_threshold

    adata = ad.read_h5ad(input_path)
    labels = _resolve_labels(adata, classes_path)
    try:
        assignment = adjust_cell_cycle_threshold(
            adata,
            labels,
            threshold=threshold,
            include_g0=include_g0,
            label_col=label_col,
            logger=logger,
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    adata.write_h5ad(out)

    n_unknown = assignment.counts().get("Unknown", 0)
    click.echo(f"Threshold {threshold:.2f}: {n_unknown}/{adata.n_obs} cells Unknown")
    click.echo(f"Output saved to: {out}")


@cli.command()
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="AnnData file with stored probabilities (.h5ad)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output CSV (state, threshold, frequency)")
@click.option("--threshold", "-t", "thresholds", type=float, multiple=True,
              help="Threshold to evaluate (repeatable; default 0, 0.1, ..., 0.9)")
@click.option("--include-g0/--collapse-g0", default=False, show_default=True)
@click.option("--classes", "-c", "classes_path", type=click.Path(exists=True),
              help="Class label file (default: labels stored by predict)")
@click.pass_context
def sweep(
    ctx: click.Context,
    input_path: str,
    output_path: str,
    thresholds: Tuple[float, ...],
    include_g0: bool,
    classes_path: Optional[str],
) -> None:
    """State frequencies across a range of thresholds."""
    logger = ctx.obj["logger"]

    import anndata as ad
    from cellcycle_classifier.core.classification import (
        DEFAULT_SWEEP_THRESHOLDS,
        ProbabilityTable,
        threshold_sweep,
    )

    adata = ad.read_h5ad(input_path)
    labels = _resolve_labels(adata, classes_path)
    try:
        table = ProbabilityTable.from_obs(adata.obs, labels)
        result = threshold_sweep(
            table,
            thresholds=thresholds or DEFAULT_SWEEP_THRESHOLDS,
            include_g0=include_g0,
            logger=logger,
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    result.to_csv(out, index=False)
    click.echo(f"Sweep over {result['threshold'].nunique()} thresholds saved to: {out}")


@cli.command("module-scores")
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True),
              help="Input AnnData file (.h5ad), normalized expression")
@click.option("--genes", "-g", "genes_path", required=True, type=click.Path(exists=True),
              help="Marker gene table with module membership columns (CSV)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output AnnData file (.h5ad)")
@click.option("--species", type=click.Choice(["human", "mouse"]), default="human",
              show_default=True)
@click.option("--gene-id", type=click.Choice(["ensembl", "symbol"]), default="ensembl",
              show_default=True)
@click.pass_context
def module_scores(
    ctx: click.Context,
    input_path: str,
    genes_path: str,
    output_path: str,
    species: str,
    gene_id: str,
) -> None:
    """Compute cell-cycle module scores for regressing out the cell cycle."""
    logger = ctx.obj["logger"]

    import anndata as ad
    from cellcycle_classifier.core.classification import (
        load_gene_modules,
        prepare_for_regression,
    )

    adata = ad.read_h5ad(input_path)
    modules = load_gene_modules(genes_path, species=species, gene_id=gene_id)
    written = prepare_for_regression(adata, modules, logger=logger)

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    adata.write_h5ad(out)
    click.echo(f"Module scores written: {', '.join(written) or 'none'}")
    click.echo(f"Output saved to: {out}")


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
