"""btf2json CLI - dump BTF type information as JSON."""

from pathlib import Path

import click
from click.core import ParameterSource

from btf2json.btf.reader import load_store
from btf2json.config.loader import load_config
from btf2json.config.models import ExportOptions
from btf2json.core.errors import Btf2JsonError
from btf2json.core.logging import configure_logging, get_logger, set_run_id
from btf2json.core.progress import pluralize, spinner, status
from btf2json.export.targets import parse_targets, resolve_targets
from btf2json.export.traversal import TypeWalker
from btf2json.export.writer import ExportResult, default_output_path, write_export

log = get_logger("cli")


def run_export(
    input_path: Path,
    output_path: Path,
    *,
    targets: str = "",
    options: ExportOptions | None = None,
    indent: int | None = None,
) -> ExportResult:
    """Load ``input_path``, convert its types and write them to ``output_path``.

    With no targets every type is written as an array in store order. With
    targets, only their closure is written, as an object keyed by type ID.

    Raises:
        Btf2JsonError: On any read, decode, resolution or write failure.
    """
    options = options or ExportOptions()
    with spinner(f"Loading {input_path.name}"):
        store = load_store(input_path)
    log.info("store_loaded", path=str(input_path), types=len(store))

    walker = TypeWalker(store, options)
    specs = parse_targets(targets)
    result: ExportResult
    if specs:
        roots = resolve_targets(store, specs)
        result = walker.walk(roots)
    else:
        result = walker.dump_all()

    write_export(result, output_path, indent=indent)
    return result


def _flag(ctx: click.Context, name: str) -> bool | None:
    """A flag's value if given on the command line, else None (use config)."""
    if ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE:
        return bool(ctx.params[name])
    return None


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="btf2json", prog_name="btf2json")
@click.argument(
    "input_path",
    metavar="INPUT",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-target",
    "--target",
    "target",
    default="",
    help="Export specific target types, split by ',', eg: 'struct:a_name,b_name'",
)
@click.option("-dereference", "--dereference", is_flag=True, help="Skip qualifiers and typedefs")
@click.option(
    "-as-map",
    "--as-map",
    "as_map",
    is_flag=True,
    help="Export the types containing child elements (struct, union, enum) as a map",
)
@click.option("-verbose", "--verbose", "-v", is_flag=True, help="Display working progress")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    input_path: Path,
    target: str,
    dereference: bool,  # noqa: ARG001
    as_map: bool,  # noqa: ARG001
    verbose: bool,
    config_path: Path | None,
) -> None:
    """Convert the BTF type information in INPUT to INPUT.json.

    INPUT is an ELF file with a .BTF section or a raw BTF blob such as
    /sys/kernel/btf/vmlinux.
    """
    try:
        config = load_config(config_path)
    except Btf2JsonError as e:
        raise click.ClickException(str(e)) from e

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)
    set_run_id()

    options = ExportOptions.from_config(
        config.export,
        dereference=_flag(ctx, "dereference"),
        as_map=_flag(ctx, "as_map"),
    )
    output_path = default_output_path(input_path)
    log.debug(
        "run_start",
        input=str(input_path),
        output=str(output_path),
        options=options.model_dump(),
    )

    try:
        result = run_export(
            input_path,
            output_path,
            targets=target,
            options=options,
            indent=config.export.indent,
        )
    except Btf2JsonError as e:
        log.error("export_failed", **e.to_dict())
        raise click.ClickException(str(e)) from e

    status(f"Wrote {pluralize(len(result), 'type')} to {output_path}", style="success")


if __name__ == "__main__":
    cli()
