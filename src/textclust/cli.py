"""CLI entry point for textclust."""

import logging
import math
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import DEFAULT_CONFIG, load_config

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """textclust - GloVe document vectors, K-Means/GMM clusters and their evaluation."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_config(ctx) -> dict:
    try:
        config = load_config(ctx.obj.get("config_path"))
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)
    _setup_logging("DEBUG" if ctx.obj.get("verbose") else config["log_level"])
    return config


def _load(path, text_column, label_column, id_column):
    from .ingest.corpus import load_corpus

    try:
        return load_corpus(path, text_column=text_column, label_column=label_column, id_column=id_column)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)


def _fmt(value: float) -> str:
    return "n/a" if value is None or math.isnan(value) else f"{value:.3f}"


@cli.command()
@click.option("--path", default=None, help="Directory to write config.yaml into")
def init(path):
    """Write a default configuration file."""
    import yaml

    base = Path(path).expanduser().resolve() if path else Path("~/.textclust").expanduser()
    base.mkdir(parents=True, exist_ok=True)
    config_file = base / "config.yaml"
    if config_file.exists():
        console.print(f"[yellow]Config already exists: {config_file}[/]")
        return

    header = (
        "# textclust configuration\n"
        "# bootstrap_B sets the resampling budget per method. GMM refits are far\n"
        "# slower than K-Means ones, so its budget is kept small.\n"
        "# periphery_size_threshold: clusters below this fraction of the mean\n"
        "# cluster size are flagged and merged for the periphery-adjusted index.\n\n"
    )
    config_file.write_text(header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False))
    console.print(f"[bold green]✓ Created config: {config_file}[/]")


@cli.command()
@click.argument("corpus", type=click.Path(exists=True, dir_okay=False))
@click.option("--text-column", default="review", help="Column holding the document text")
@click.option("--min-count", type=int, default=None, help="Override min_term_count")
@click.option("--top", "-n", default=20, help="Number of terms to show")
@click.pass_context
def vocab(ctx, corpus, text_column, min_count, top):
    """Build and summarize the pruned vocabulary of a corpus."""
    from .errors import EmptyVocabularyError
    from .text.vocabulary import build_vocabulary

    config = _get_config(ctx)
    docs = _load(corpus, text_column, None, None)
    min_count = min_count or config["min_term_count"]

    try:
        vocabulary = build_vocabulary((d.tokens for d in docs), min_count=min_count)
    except EmptyVocabularyError as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)

    console.print(f"[green]✓ {len(vocabulary)} terms with count >= {min_count} across {len(docs)} documents[/]")
    table = Table(title="Most frequent terms")
    table.add_column("#", style="dim", width=4)
    table.add_column("Term", style="cyan")
    table.add_column("Count", justify="right", style="green")
    for i, (term, count) in enumerate(zip(vocabulary.terms[:top], vocabulary.counts[:top]), 1):
        table.add_row(str(i), term, str(count))
    console.print(table)


@cli.command()
@click.argument("corpus", type=click.Path(exists=True, dir_okay=False))
@click.option("--text-column", default="review", help="Column holding the document text")
@click.option("--label-column", default="sentiment", help="Column holding an external label")
@click.option("--id-column", default=None, help="Column holding document ids")
@click.option("--out", "out_dir", default=None, help="Directory to save artifacts into")
@click.pass_context
def run(ctx, corpus, text_column, label_column, id_column, out_dir):
    """Run the full pipeline on a corpus and report cluster quality."""
    from .errors import TextclustError
    from .interpret.summary import cluster_summary, label_crosstab
    from .pipeline import run_pipeline
    from .storage.artifacts import ArtifactStore

    config = _get_config(ctx)
    docs = _load(corpus, text_column, label_column, id_column)
    console.print(f"[blue]Running pipeline on {len(docs)} documents...[/]")

    try:
        result = run_pipeline(docs, config)
    except TextclustError as e:
        console.print(f"[red]✗ Pipeline aborted: {e}[/]")
        raise SystemExit(1)

    console.print(
        f"[green]✓ Vocabulary {len(result.vocabulary)} terms, embeddings "
        f"{'converged' if result.embeddings.converged else 'not converged'} after {result.embeddings.n_iter} passes[/]"
    )
    if result.vectors.missing:
        console.print(f"  [yellow]{len(result.vectors.missing)} document(s) without vectors were excluded[/]")

    table = Table(title="Cluster quality")
    table.add_column("Configuration", style="cyan")
    table.add_column("Davies-Bouldin", justify="right")
    table.add_column("DB (periphery)", justify="right")
    table.add_column("Silhouette", justify="right")
    table.add_column("Stability", justify="right", style="green")
    table.add_column("Periphery", justify="right")
    for name, assignment in result.assignments.items():
        scores = result.validity.get(name, {})
        stab = result.stability.get(name)
        table.add_row(
            name,
            _fmt(scores.get("davies_bouldin")),
            _fmt(scores.get("davies_bouldin_periphery")),
            _fmt(scores.get("silhouette")),
            _fmt(stab.mean()) if stab else "n/a",
            ", ".join(str(c) for c in assignment.periphery) or "-",
        )
    console.print(table)

    top_n = config["top_terms"]
    labeled = any(d.label is not None for d in result.documents)
    for name, assignment in result.assignments.items():
        console.print(f"\n[bold]{name}[/]")
        summary = cluster_summary(assignment, result.documents, n=top_n)
        if labeled:
            shares = label_crosstab(assignment, result.documents, normalize=True)
            summary = summary.join(shares.add_prefix("label="), how="left")
        console.print(summary.to_string(float_format=lambda v: f"{v:.2f}"))

    for failure in result.failures:
        console.print(f"[red]✗ {failure}[/]")

    out_dir = out_dir or config.get("artifacts_path")
    if out_dir:
        paths = ArtifactStore(out_dir).save_result(result)
        console.print(f"\n[green]✓ Saved {len(paths)} artifacts to {out_dir}[/]")


if __name__ == "__main__":
    cli()
