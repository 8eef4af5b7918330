"""Service entry point.

- ``python -m market_pipeline.main`` serves the HTTP API with uvicorn.
- ``python -m market_pipeline.main --once inputs.json`` runs agency
  discovery for the given CoreInputs, assembles the combined report for the
  top agencies found and prints it as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import uvicorn

from .aggregator.agency_search import AgencyFinder
from .api.app import create_app
from .config import Config, load_config
from .fetcher.awards import AwardFetcher
from .joiners.datasets import DatasetStore
from .models.core_inputs import CoreInputs
from .reports.assembler import ReportAssembler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

ONCE_TOP_AGENCIES = 10


async def run_once(config: Config, inputs_path: Path) -> dict:
    """Find agencies, then build the report for the top ``ONCE_TOP_AGENCIES`` of them."""
    start_time = datetime.now(timezone.utc)
    with open(inputs_path, "r", encoding="utf-8") as f:
        inputs = CoreInputs.model_validate(json.load(f))

    datasets = DatasetStore(config.data_dir).current
    fetcher = AwardFetcher.from_config(config)

    search = await AgencyFinder.from_config(config, fetcher, datasets).find(inputs)
    top = search.agencies[:ONCE_TOP_AGENCIES]
    logger.info("once_agencies_found total=%d using=%d", search.total_count, len(top))

    report = await ReportAssembler(datasets, idv_fetcher=fetcher).assemble(inputs, [a.name for a in top], top)

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info("once_complete duration_s=%.2f", duration)
    return {"success": True, "agencySearch": search.to_wire(), "report": report.to_wire()}


def serve(config: Config) -> None:
    logger.info("Starting market pipeline API on %s:%d", config.api_host, config.api_port)
    app = create_app(config)
    uvicorn.run(app, host=config.api_host, port=config.api_port, log_level=config.log_level.lower())


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Federal market research pipeline")
    parser.add_argument("--once", metavar="INPUTS_JSON", type=Path, help="Run one search + report and print JSON")
    parser.add_argument("--output", metavar="PATH", type=Path, help="Write the --once JSON here instead of stdout")
    args = parser.parse_args(argv)

    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    if args.once:
        result = asyncio.run(run_once(config, args.once))
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(result, f, indent=2)
            logger.info("once_written path=%s", args.output)
        else:
            json.dump(result, sys.stdout, indent=2)
            sys.stdout.write("\n")
    else:
        serve(config)


if __name__ == "__main__":
    main()
