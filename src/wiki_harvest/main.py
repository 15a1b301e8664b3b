# ABOUTME: Command line entry point built on asyncclick, with rich output for interactive runs
# ABOUTME: Provides the harvest command for batch wiki extraction and logging status

import asyncclick as click
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from wiki_harvest.config import Config, load_config
from wiki_harvest.core.errors import PolicyError
from wiki_harvest.core.models import BatchResult, ProgressInfo
from wiki_harvest.core.pipeline import BatchPipeline, validate_pipeline_outcome
from wiki_harvest.extraction.wiki import HoyoLabContentClient
from wiki_harvest.persistence import JsonFileSink, load_entries
from wiki_harvest.utils.logging import LoggingMode, configure_logging, get_logging_status, with_pipeline_context
from wiki_harvest.utils.rich_tables import (
    create_batch_summary_table,
    create_failed_entries_table,
    create_logging_status_table,
    print_rich_table,
)

console = Console()


def _display_results(result: BatchResult, output: str) -> None:
    """Display run statistics and failures."""
    print_rich_table(console, create_batch_summary_table(result))
    if result.failed:
        print_rich_table(console, create_failed_entries_table(result))
    console.print(f"[green]💾 {len(result.successful)} records written to {output}[/green]")


async def _run_pipeline(pipeline_factory, entries, options, json_output: bool) -> BatchResult:
    """Run the pipeline, with a progress bar unless JSON output was requested."""
    if json_output:
        return await pipeline_factory(None).run(entries, options)

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("🌐 Harvesting", total=len(entries))

        def on_progress(info: ProgressInfo) -> None:
            progress.update(task, completed=info.current, description=f"🌐 {info.entry_id} ({info.stage})")

        return await pipeline_factory(on_progress).run(entries, options)


@click.command()
@click.argument("entries_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="data/agents.json", show_default=True, help="Where to write the records")
@click.option("--batch-size", type=int, help="Entries per batch")
@click.option("--delay-ms", type=float, help="Delay between batches in milliseconds")
@click.option("--max-retries", type=int, help="Retries per entry after the first attempt")
@click.option("--min-success-rate", type=float, help="Minimum accepted success rate (0-1)")
@click.option("--concurrent", is_flag=True, default=None, help="Process entries of a batch concurrently")
@click.option("--primary-only", is_flag=True, help="Skip the secondary-locale name lookup")
@click.pass_context
async def harvest(
    ctx,
    entries_json: str,
    output: str,
    batch_size: int | None,
    delay_ms: float | None,
    max_retries: int | None,
    min_success_rate: float | None,
    concurrent: bool | None,
    primary_only: bool,
):
    """
    🌐 Harvest agent records for every entry in ENTRIES_JSON.

    Fetches each entry's wiki page, maps it into an agent record and writes
    the successful records to OUTPUT as JSON.
    """
    overrides = {
        "batch_size": batch_size,
        "inter_batch_delay_ms": delay_ms,
        "max_retries_per_item": max_retries,
        "min_success_rate": min_success_rate,
        "concurrent": concurrent,
    }
    config = load_config(**{key: value for key, value in overrides.items() if value is not None})
    if primary_only:
        config = config.model_copy(update={"secondary_locale": None})

    await _harvest_async(config, entries_json, output, ctx.obj["json_output"])


async def _harvest_async(config: Config, entries_json: str, output: str, json_output: bool):
    """Run one harvest and persist its records."""
    entries = load_entries(entries_json)
    options = config.pipeline_options()

    with with_pipeline_context("harvest", entries=len(entries), output=output) as logger:
        logger.info("Starting harvest", entries_file=entries_json)

        async with HoyoLabContentClient(base_url=config.api_base_url, timeout=config.request_timeout) as client:

            def pipeline_factory(on_progress):
                return BatchPipeline(
                    client,
                    primary_locale=config.primary_locale,
                    secondary_locale=config.secondary_locale,
                    on_progress=on_progress,
                )

            result = await _run_pipeline(pipeline_factory, entries, options, json_output)

        await JsonFileSink(output).write(result.successful)

        if json_output:
            click.echo(result.statistics.model_dump_json())
        else:
            _display_results(result, output)

        try:
            validate_pipeline_outcome(result, options.min_success_rate)
        except PolicyError as e:
            logger.error("Harvest below accepted success rate", failed_ids=e.failed_ids)
            raise click.ClickException(str(e)) from e

        logger.info("Harvest complete", successful=len(result.successful), failed=len(result.failed))


def _setup_logging(json_output: bool, log_level: str | None, log_file: str | None) -> None:
    """CLI flags take precedence over WIKI_HARVEST_LOG_LEVEL and WIKI_HARVEST_LOG_FILE."""
    config = load_config()
    configure_logging(
        mode=LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE,
        log_level=log_level or config.log_level,
        log_file=log_file or (str(config.log_file) if config.log_file else None),
    )


@click.command(name="logging-status")
def show_logging_status():
    """
    📊 Show where this process would write its logs.
    """
    print_rich_table(console, create_logging_status_table(get_logging_status()))


@click.group(invoke_without_command=True)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON lines on stdout instead of tables and log files")
@click.option("--log-level", default=None, help="Minimum log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", default=None, help="Path of the human-readable log file")
@click.pass_context
def app(ctx, json_output: bool, log_level: str | None, log_file: str | None):
    """
    🌐 Wiki Harvest - batch extraction of agent records from the HoyoLab wiki

    Fetches agent pages, maps them into validated records and tolerates
    partial failure across large entry lists.
    """
    ctx.obj = {"json_output": json_output}
    _setup_logging(json_output, log_level, log_file)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


app.add_command(harvest)
app.add_command(show_logging_status)


if __name__ == "__main__":
    app()
