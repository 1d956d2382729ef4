"""vcf-codec: read, validate and re-encode VCF files from the command line."""

import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .bcftools import create_index
from .config import CodecConfig, ConfigValidationError, load_config
from .errors import ConsistencyError, VCFError
from .header import Header, HeaderLine
from .reader import VCF
from .sources import StreamSink
from .variant import VariantType
from .writer import VCFWriter, open_writer


def version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


app = typer.Typer(name="vcf-codec", help="Read, validate and re-encode VCF files")
console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="TOML configuration file")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress non-error output")]
LogFileOption = Annotated[Path | None, typer.Option("--log", help="Write log to file")]


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", callback=version_callback, is_eager=True, help="Show version and exit"
        ),
    ] = None,
) -> None:
    pass


def setup_logging(
    verbose: bool, quiet: bool, default_level: str = "INFO", log_file: Path | None = None
) -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.getLevelName(default_level)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("vcf_codec").setLevel(level)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logging.getLogger("vcf_codec").addHandler(file_handler)


def _fail(message: str) -> None:
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1) from None


def _prepare(
    config_file: Path | None, verbose: bool, quiet: bool, log_file: Path | None = None
) -> CodecConfig:
    config = CodecConfig()
    if config_file:
        try:
            config = load_config(config_file)
        except (FileNotFoundError, ConfigValidationError) as e:
            _fail(str(e))
    setup_logging(verbose, quiet, config.log_level, log_file)
    return config


def _open(vcf_path: Path, config: CodecConfig) -> VCF:
    if not vcf_path.exists():
        _fail(f"VCF file not found: {vcf_path}")
    try:
        return VCF.open(vcf_path, config)
    except (VCFError, OSError) as e:
        _fail(str(e))


def _parse_filter_option(value: str) -> HeaderLine:
    filter_id, sep, description = value.partition(":")
    if not sep or not filter_id:
        raise typer.BadParameter(f"expected ID:DESCRIPTION, got {value!r}")
    return HeaderLine.structured("FILTER", {"ID": filter_id, "Description": description})


@app.command()
def header(
    vcf_path: Path = typer.Argument(..., help="Path to VCF file (.vcf, .vcf.gz, .bcf)"),
    samples: bool = typer.Option(False, "--samples", "-s", help="Only list sample names"),
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Print the parsed header, re-serialized."""
    config = _prepare(config_file, verbose, quiet)
    vcf = _open(vcf_path, config)

    if samples:
        for name in vcf.header.samples:
            typer.echo(name)
        return
    for line in vcf.header.to_vcf_lines():
        typer.echo(line)


@app.command()
def view(
    vcf_path: Path = typer.Argument(..., help="Path to VCF file (.vcf, .vcf.gz, .bcf)"),
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file (.vcf, .vcf.gz, .bcf); stdout if omitted"),
    ] = None,
    add_filter: Annotated[
        list[str] | None,
        typer.Option(
            "--add-filter", help="Declare FILTER ID:DESCRIPTION and apply it to every record"
        ),
    ] = None,
    regions: Annotated[
        str | None, typer.Option("--regions", "-r", help="Restrict to regions (needs an index)")
    ] = None,
    skip_invalid: bool = typer.Option(
        False, "--skip-invalid", help="Skip records that do not match the header instead of failing"
    ),
    index: bool = typer.Option(False, "--index", help="Index the output after writing"),
    config_file: ConfigOption = None,
    log_file: LogFileOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Stream records, validate them against the header and re-encode them."""
    config = _prepare(config_file, verbose, quiet, log_file)
    filter_lines = [_parse_filter_option(value) for value in add_filter or []]
    vcf = _open(vcf_path, config)

    out_header: Header = vcf.header
    for line in filter_lines:
        if not out_header.has_id("FILTER", line.id):
            out_header.add_header_lines(line)
    filter_ids = [line.id for line in filter_lines]

    try:
        if output is not None:
            writer = open_writer(output, config)
        else:
            writer = VCFWriter(StreamSink(sys.stdout), bare_flags=config.emit_flag_info_bare)
    except VCFError as e:
        _fail(str(e))

    skipped = 0
    try:
        with writer, vcf.scanner(regions) as scanner:
            writer.write_header(out_header)
            for variant in scanner:
                for filter_id in filter_ids:
                    if filter_id not in variant.filter:
                        variant.filter.append(filter_id)
                try:
                    writer.write_variant(variant)
                except ConsistencyError:
                    if not skip_invalid:
                        raise
                    skipped += 1
            scanner.check()
    except (VCFError, OSError) as e:
        _fail(str(e))

    if index or config.index_after_write:
        if output is None:
            err_console.print("[yellow]Skipping index: output is stdout[/yellow]")
        else:
            try:
                create_index(output, config.bcftools_path)
            except VCFError as e:
                _fail(str(e))

    if not quiet:
        summary = f"[green]✓[/green] Wrote {writer.written:,} records"
        if skipped:
            summary += f" ([yellow]{skipped:,} skipped[/yellow])"
        err_console.print(summary)


@app.command()
def stats(
    vcf_path: Path = typer.Argument(..., help="Path to VCF file (.vcf, .vcf.gz, .bcf)"),
    genotypes: bool = typer.Option(
        False, "--genotypes", "-g", help="Also summarise genotype calls per sample"
    ),
    regions: Annotated[
        str | None, typer.Option("--regions", "-r", help="Restrict to regions (needs an index)")
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Count records by variant type and, optionally, genotype calls by sample."""
    config = _prepare(config_file, verbose, quiet)
    vcf = _open(vcf_path, config)

    type_counts: Counter[VariantType] = Counter()
    call_counts: dict[str, Counter[str]] = {name: Counter() for name in vcf.header.samples}
    total = 0
    filtered = 0

    with vcf.scanner(regions) as scanner:
        for variant in scanner:
            total += 1
            type_counts[variant.variant_type] += 1
            if variant.is_filtered():
                filtered += 1
            if genotypes:
                for genotype in variant.genotypes:
                    counts = call_counts[genotype.name]
                    if genotype.is_no_call():
                        counts["no_call"] += 1
                    elif genotype.is_hom_ref():
                        counts["hom_ref"] += 1
                    elif genotype.is_het():
                        counts["het"] += 1
                    elif genotype.is_hom_var():
                        counts["hom_var"] += 1
    if scanner.err is not None:
        _fail(str(scanner.err))

    table = Table(title=f"{vcf_path.name}", border_style="cyan")
    table.add_column("Variant type", style="bold yellow")
    table.add_column("Count", justify="right")
    for variant_type in VariantType:
        table.add_row(variant_type.value, f"{type_counts[variant_type]:,}")
    console.print(table)
    console.print(
        f"Records: {total:,}  Filtered: {filtered:,}  Samples: {len(vcf.header.samples)}"
    )

    if genotypes and call_counts:
        gt_table = Table(title="Genotype calls", border_style="green")
        gt_table.add_column("Sample", style="bold cyan")
        for column in ("hom_ref", "het", "hom_var", "no_call"):
            gt_table.add_column(column, justify="right")
        for name, counts in call_counts.items():
            gt_table.add_row(
                name,
                *(f"{counts[c]:,}" for c in ("hom_ref", "het", "hom_var", "no_call")),
            )
        console.print(gt_table)


@app.command("index")
def index_command(
    vcf_path: Path = typer.Argument(..., help="Compressed VCF (.vcf.gz) or BCF file"),
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Build a tabix (.vcf.gz) or CSI (.bcf) index with bcftools."""
    config = _prepare(config_file, verbose, quiet)
    if not vcf_path.exists():
        _fail(f"VCF file not found: {vcf_path}")
    try:
        create_index(vcf_path, config.bcftools_path)
    except VCFError as e:
        _fail(str(e))
    if not quiet:
        console.print(f"[green]✓[/green] Indexed {vcf_path.name}")


@app.command()
def doctor(config_file: ConfigOption = None) -> None:
    """Check system dependencies.

    Verifies that Python and bcftools are available and provides
    installation instructions for any that are missing.
    """
    from .doctor import DependencyChecker

    config = _prepare(config_file, verbose=False, quiet=True)

    console.print("\n[bold]vcf-codec System Check[/bold]")
    console.print("─" * 30)

    checker = DependencyChecker(config.bcftools_path)
    results = checker.check_all()

    for result in results:
        if result.passed:
            version_str = f" ({result.version})" if result.version else ""
            console.print(f"[green]✓[/green] {result.name}{version_str}")
        else:
            console.print(f"[red]✗[/red] {result.name}")
            if result.message:
                console.print(f"    {escape(result.message)}")
            console.print(f"    Install: {checker.get_install_instructions(result.name.lower())}")

    console.print()

    if checker.all_passed(results):
        console.print("[green]All systems ready![/green]")
    else:
        console.print("[yellow]Some checks failed.[/yellow]")
        console.print("\nNote: plain-text .vcf files can be read without bcftools.")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
