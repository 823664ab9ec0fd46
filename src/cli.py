# src/cli.py
import argparse
import logging
import sys
from typing import Optional

from hubscraper.config import load_config
from hubscraper.main import ScrapePipeline
from hubscraper.news_importer import NewsImporter
from hubscraper.seed import seed_database
from hubscraper.storage.database import HubDatabase
from hubscraper.utils.logging import setup_logging
from hubscraper.exceptions import PipelineError, ConfigurationError

cli_logger = logging.getLogger("cli")

FALLBACK_LOG_CONFIG = {"level": "INFO", "console": True, "format": "%(asctime)s [%(levelname)s] %(name)s - %(message)s"}


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Model hub data pipeline: refreshes prices, benchmark scores and news for the comparison site",
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        help=(
            "Path to a specific YAML configuration file. \n"
            "If not provided, 'default.yaml' in the config directory is used, \n"
            "merged with an environment-specific file (e.g., 'development.yaml')."
        )
    )
    parser.add_argument(
        "--env", "-e",
        type=str,
        default="development",
        help="Environment overrides to merge ('<env>.yaml' next to the base config). Default: 'development'."
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute", required=True)

    scrape_parser = subparsers.add_parser("scrape", help="Run the pricing and benchmark sources.")
    scrape_parser.add_argument(
        "--sources",
        type=str,
        nargs="+",
        metavar="SOURCE_NAME",
        help="Source names to run, e.g. 'pricing:openai' (default: all enabled sources)."
    )

    subparsers.add_parser("import-news", help="Import markdown news digests into the news table.")
    subparsers.add_parser("seed", help="Insert the catalog of providers, models and benchmarks (idempotent).")
    subparsers.add_parser("status", help="Show the latest run of every source and the model counts.")
    subparsers.add_parser("db-health", help="Check the health and connectivity of the database.")

    return parser.parse_args(argv)


def _print_status(db: HubDatabase):
    runs = db.get_latest_scrape_runs()
    if not runs:
        cli_logger.info("No scrape runs recorded yet.")
    for run in runs:
        line = f"  {run['scraper']:<36} {run['status']:<8} {run['models_updated']:>4}  {run['finished_at'] or '-'}"
        if run["error_message"]:
            line += f"  ({run['error_message']})"
        cli_logger.info(line)
    for category, count in sorted(db.get_model_counts().items()):
        cli_logger.info(f"  {category}: {count} active models")


def main_cli(argv=None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)

    effective_env: Optional[str] = args.env if not args.config else None
    try:
        config = load_config(config_path=args.config, env=effective_env)
        setup_logging(config.get("logging", FALLBACK_LOG_CONFIG))
    except ConfigurationError as e:
        setup_logging(FALLBACK_LOG_CONFIG)
        cli_logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        setup_logging(FALLBACK_LOG_CONFIG)
        cli_logger.error(f"Critical error during initial setup: {e}", exc_info=True)
        return 1

    cli_logger.info(f"Hub pipeline starting with command: '{args.command}'")
    cli_logger.debug(f"Full arguments: {args}")

    db: Optional[HubDatabase] = None
    pipeline: Optional[ScrapePipeline] = None
    try:
        db = HubDatabase(config["database"]["path"], config=config)
        db.init_db()

        if args.command == "scrape":
            pipeline = ScrapePipeline(config, db=db)
            summary = pipeline.run(only=args.sources)
            if summary.failed:
                cli_logger.warning(f"Sources with errors: {', '.join(summary.failed)}")

        elif args.command == "import-news":
            digests_dir = config.get("digests", {}).get("directory", "news-digests")
            summary = NewsImporter(db, digests_dir=digests_dir).import_all()
            cli_logger.info(f"News import: {summary.items} items from {summary.files} files.")
            if summary.failed:
                cli_logger.warning(f"Digests that failed to import: {', '.join(summary.failed)}")

        elif args.command == "seed":
            summary = seed_database(db)
            cli_logger.info(
                f"Seeded {summary.providers} providers, {summary.models} models, "
                f"{summary.benchmarks} benchmarks and {summary.scores} scores."
            )

        elif args.command == "status":
            _print_status(db)

        elif args.command == "db-health":
            cli_logger.info("Performing database health check...")
            if db.health_check():
                cli_logger.info("Database health check: PASSED.")
            else:
                cli_logger.error("Database health check: FAILED. Check logs for details.")
                return 1

        cli_logger.info(f"Command '{args.command}' completed successfully.")
        return 0

    except KeyboardInterrupt:
        cli_logger.info("Keyboard interrupt received. Shutting down...")
        return 130
    except ConfigurationError as e:
        cli_logger.error(f"Configuration error: {e}")
        return 1
    except PipelineError as e:
        cli_logger.error(f"A pipeline error occurred: {e}", exc_info=True)
        return 2
    except Exception as e:
        cli_logger.error(f"An unexpected error occurred: {e}", exc_info=True)
        return 1
    finally:
        if pipeline:
            pipeline.close()
        elif db:
            db.close_connection()
        cli_logger.info("Hub pipeline CLI finished.")


if __name__ == "__main__":
    sys.exit(main_cli())
