#!/usr/bin/env python3
"""
Site Export Pipeline - Main CLI Entry Point

Reads a rendered documentation site, annotates every page with computed
metadata and, when export is active for this build, writes a Markdown
rendition of each page plus a search index.
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

import yaml

from annotators import GitProvenance, MetadataAnnotator
from config_loader import ConfigLoader, get_nested, resolve_export_configuration
from errors import SiteExportError
from exporters import ExportController
from fetchers import SiteReader
from logger import log_config, log_section, setup_logging
from orchestrator import REPORT_FILENAME, ExportReport, LifecycleEvents, PipelineDriver

__version__ = "1.0.0"

DEFAULT_CONFIG_PATH = 'site-export.yaml'


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='site-export',
        description="Annotate a rendered documentation site and export it as Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use settings from site-export.yaml; export runs only in CI
  site-export

  # Force export locally
  site-export --export --site-dir build/site --base-url https://docs.example.com

  # Disable export even in CI
  SITE_EXPORT=false site-export

  # Convert everything but write nothing
  site-export --export --dry-run -v
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help=f'Path to configuration YAML file (default: {DEFAULT_CONFIG_PATH} if present)'
    )

    parser.add_argument(
        '--site-dir',
        type=str,
        help='Directory of the rendered site (overrides site.directory)'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Export output directory (overrides export.output_directory)'
    )

    parser.add_argument(
        '--base-url',
        type=str,
        help='Absolute base URL of the published site (overrides site.base_url)'
    )

    parser.add_argument(
        '--export',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Force export on or off, regardless of SITE_EXPORT, config or CI'
    )

    parser.add_argument(
        '--workers',
        type=int,
        help='Number of pages converted in parallel (overrides export.max_workers)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        default=False,
        help='Convert every page but write nothing'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this file'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> dict:
    """Load the config file (if any), merge CLI arguments and validate."""
    config_path = args.config
    if config_path is None and os.path.exists(DEFAULT_CONFIG_PATH):
        config_path = DEFAULT_CONFIG_PATH

    if config_path is not None:
        config = ConfigLoader.load(config_path)
    else:
        config = ConfigLoader.with_defaults({})

    config = ConfigLoader.merge_with_args(config, args)

    if not get_nested(config, 'site.directory'):
        raise ValueError("Missing required configuration: site.directory (or --site-dir)")

    ConfigLoader.validate(config)
    return config


def run_pipeline(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the annotate/export pipeline over the rendered site."""
    start_time = time.time()

    export_config = resolve_export_configuration(
        config, os.environ, cli_override=args.export, logger=logger
    )

    reader = SiteReader(
        get_nested(config, 'site.directory'),
        content_selector=get_nested(config, 'site.content_selector'),
        exclude=[export_config.output_directory],
        logger=logger
    )
    pages = reader.read_pages()
    if not pages:
        logger.warning(f"No HTML pages found in {reader.site_directory}")

    annotator = MetadataAnnotator(
        words_per_minute=get_nested(config, 'metadata.words_per_minute', 200),
        provenance=GitProvenance(enabled=get_nested(config, 'metadata.git_provenance', True) is not False,
                                 logger=logger),
        logger=logger
    )
    show_progress = sys.stderr.isatty()
    controller = ExportController(export_config, logger=logger, show_progress=show_progress)
    driver = PipelineDriver(export_config, annotator=annotator, controller=controller, logger=logger)

    events = LifecycleEvents()
    result = driver.run(pages, events)

    report_generator = ExportReport(logger)
    report = report_generator.generate_report(
        export_config, driver.get_stats(), result, time.time() - start_time
    )
    print("\n" + report_generator.format_console_report(report))

    if export_config.enabled and export_config.write_report and not export_config.dry_run:
        report_path = Path(export_config.output_directory) / REPORT_FILENAME
        report_generator.export_json_report(report, str(report_path))

    errors = report['summary'].get('total_errors', 0)
    if errors > 0:
        logger.warning(f"Pipeline completed with {errors} page errors")
    else:
        logger.info("Pipeline completed successfully")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        logger = setup_logging(verbosity=args.verbose)

        log_section("Site Export Pipeline")
        logger.info(f"Version: {__version__}")

        config = load_configuration(args)

        # Reconfigure logging with config file settings; -v/-vv already merged into logging.level
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except yaml.YAMLError as e:
        print(f"ERROR: Invalid configuration file: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nExport interrupted by user", file=sys.stderr)
        return 130

    try:
        return run_pipeline(config, args, logger)
    except SiteExportError as e:
        logger.error(f"Export failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Export interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
