"""
Command-line entry point: remove visible Gemini watermarks from files or directories.
"""
from pathlib import Path
from typing import Optional

import click

from engines.reversal.config import RemovalConfig, ProcessOptions, SizeClass
from engines.reversal.engine import WatermarkRemovalEngine
from engines.reversal.errors import InitError
from shared.config import get_settings, build_removal_config
from shared.utils import FileUtils, LoggerUtils
from .batch_processor import BatchProcessor, FileResult

EPILOG = (
    "Simple usage: gemini-watermark <image>  (auto-detect and write <name>_cleaned.<ext>)\n\n"
    "NOTE: only the VISIBLE sparkle logo is removed. Invisible watermarks (SynthID) are untouched."
)


def _echo_result(result: FileResult, verbose: bool, quiet: bool) -> None:
    if quiet and result.success:
        return
    
    name = result.path.name or str(result.path)
    
    if result.skipped:
        click.echo(f"[SKIP] {name}: {result.message}", err=True)
    elif result.success:
        if result.confidence > 0.0:
            click.echo(f"[OK] {name} ({result.confidence * 100:.0f}% confidence)", err=True)
        else:
            click.echo(f"[OK] {name}", err=True)
    else:
        click.echo(f"[FAIL] {name}: {result.message}", err=True)
    
    if verbose and result.message:
        click.echo(f"  -> {result.message}", err=True)


@click.command(name="gemini-watermark", epilog=EPILOG)
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None,
              help="Output file or directory (default: {name}_cleaned.{ext}).")
@click.option("-f", "--force", is_flag=True, help="Skip watermark detection, process unconditionally.")
@click.option("-t", "--threshold", type=click.FloatRange(0.0, 1.0), default=None,
              help="Detection confidence threshold (0.0-1.0).")
@click.option("--force-small", is_flag=True, help="Force the 48x48 watermark size.")
@click.option("--force-large", is_flag=True, help="Force the 96x96 watermark size.")
@click.option("-c", "--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="YAML configuration file.")
@click.option("-j", "--workers", type=click.IntRange(min=1), default=None,
              help="Worker threads for directory input.")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress all non-error output.")
@click.pass_context
def main(ctx: click.Context, input_path: Path, output: Optional[Path], force: bool,
         threshold: Optional[float], force_small: bool, force_large: bool,
         config_path: Optional[Path], workers: Optional[int], verbose: bool, quiet: bool) -> None:
    """Remove visible Gemini AI watermarks via reverse alpha blending."""
    if force_small and force_large:
        raise click.UsageError("Cannot specify both --force-small and --force-large")
    
    settings = get_settings()
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    else:
        level = settings.monitoring.log_level
    LoggerUtils.setup_logger("engines", level)
    
    try:
        config = RemovalConfig.from_yaml(str(config_path)) if config_path else build_removal_config(settings.removal)
        engine = WatermarkRemovalEngine(config)
    except (InitError, ValueError) as e:
        click.echo(f"Fatal: Failed to initialize engine: {e}", err=True)
        ctx.exit(1)
    
    force_size = None
    if force_small:
        force_size = SizeClass.SMALL
    elif force_large:
        force_size = SizeClass.LARGE
    
    options = ProcessOptions(
        confidence_threshold=threshold,
        force=force,
        force_size=force_size
    )
    
    if not quiet:
        if force:
            click.echo("WARNING: Force mode - processing ALL images without detection!", err=True)
        else:
            click.echo(f"Auto-detection enabled (threshold: {engine.threshold_for(options) * 100:.0f}%)", err=True)
    
    processor = BatchProcessor(engine, options, num_workers=workers)
    
    if input_path.is_dir():
        if output is None:
            raise click.UsageError("Output directory is required for batch processing "
                                   "(gemini-watermark <input_dir> -o <output_dir>)")
        results = processor.process_directory(input_path, output)
    else:
        output_path = output if output else FileUtils.default_output_path(input_path, config.output_suffix)
        results = [processor.process_file(input_path, output_path)]
    
    for r in results:
        _echo_result(r, verbose, quiet)
    
    summary = processor.summarize(results)
    if len(results) > 1 and not quiet:
        line = f"[Summary] Processed: {summary.processed}"
        if summary.skipped:
            line += f", Skipped: {summary.skipped}"
        if summary.failed:
            line += f", Failed: {summary.failed}"
        click.echo(f"{line} (Total: {summary.total})", err=True)
    
    if summary.has_failures:
        ctx.exit(1)


if __name__ == "__main__":
    main()
