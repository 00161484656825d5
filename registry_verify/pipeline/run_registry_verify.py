"""
Main pipeline orchestrator for RegistryVerify.

Coordinates the reconciliation run from file ingestion through matching,
reporting and saving results.
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..ingestion.file_loader import load_customer_rows, load_registry_sources
from ..match.scorer import get_scoring_statistics
from ..models import MatchOutput
from ..normalize.config import load_match_config, save_match_config
from .match_engine import MatchEngine

logger = logging.getLogger(__name__)


class RegistryVerifyPipeline:
    """
    Main pipeline orchestrator for RegistryVerify.

    Coordinates ingestion, matching and reporting with per-stage timing
    and logging.
    """

    def __init__(self, config_path: str = "config/registry_verify.yaml"):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self.config = load_match_config(config_path)
        self.engine = MatchEngine(self.config)

        self.pipeline_start_time = None
        self.stage_times: Dict[str, float] = {}
        self.stage_durations: Dict[str, float] = {}

        logger.info("Initialized RegistryVerify pipeline")

    def _start_stage_timer(self, stage_name: str):
        """Start timing for a pipeline stage."""
        self.stage_times[stage_name] = time.time()
        logger.info(f"Starting stage: {stage_name}")

    def _end_stage_timer(self, stage_name: str):
        """End timing for a pipeline stage."""
        if stage_name in self.stage_times:
            duration = time.time() - self.stage_times[stage_name]
            self.stage_durations[stage_name] = duration
            logger.info(f"Completed stage: {stage_name} in {duration:.2f} seconds")

    def ingest_data(self, customers_path: str,
                    registry_paths: Sequence[str]) -> tuple:
        """
        Ingest the customer roster and the registry files.

        Args:
            customers_path: Customer file path
            registry_paths: Registry file paths

        Returns:
            Tuple of (customer rows, registry matrices keyed by file name)
        """
        self._start_stage_timer("data_ingestion")

        try:
            customers = load_customer_rows(customers_path)
            registries = load_registry_sources(registry_paths)

            self._end_stage_timer("data_ingestion")
            return customers, registries

        except Exception as e:
            logger.error(f"Data ingestion failed: {e}")
            raise

    def match(self, customers: List[Dict[str, Any]],
              registries: Dict[str, List[List[Any]]]) -> MatchOutput:
        """
        Match customers against every registry source.

        Args:
            customers: Customer rows
            registries: Registry matrices keyed by source label

        Returns:
            MatchOutput
        """
        self._start_stage_timer("matching")

        try:
            output = self.engine.run(customers, registries)

            self._end_stage_timer("matching")
            return output

        except Exception as e:
            logger.error(f"Matching failed: {e}")
            raise

    def generate_report(self, output: MatchOutput) -> Dict[str, Any]:
        """
        Generate run report.

        Args:
            output: Match output of the run

        Returns:
            Report dictionary
        """
        report = {
            "pipeline_execution": {
                "start_time": datetime.fromtimestamp(self.pipeline_start_time).isoformat()
                if self.pipeline_start_time else None,
                "end_time": datetime.now().isoformat(),
                "stage_durations": dict(self.stage_durations),
                "total_duration": time.time() - self.pipeline_start_time if self.pipeline_start_time else 0
            },
            "summary": output.summary.to_dict(),
            "scoring_statistics": get_scoring_statistics(
                [record.score for record in output.matches], self.config.thresholds),
            "blocking_statistics": dict(self.engine.source_statistics),
        }

        logger.info("Pipeline report generated")
        return report

    def run_pipeline(self, customers_path: str, registry_paths: Sequence[str],
                     output_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Run the complete RegistryVerify pipeline.

        Args:
            customers_path: Customer file path
            registry_paths: Registry file paths
            output_path: Directory for output files (optional)

        Returns:
            Pipeline execution report
        """
        self.pipeline_start_time = time.time()
        logger.info(f"Starting RegistryVerify pipeline for {customers_path} "
                    f"against {len(registry_paths)} registry files")

        customers, registries = self.ingest_data(customers_path, registry_paths)
        output = self.match(customers, registries)
        report = self.generate_report(output)

        if output_path:
            self._save_results(output, report, output_path)

        total_duration = time.time() - self.pipeline_start_time
        logger.info(f"Pipeline completed successfully in {total_duration:.2f} seconds")

        return report

    def _save_results(self, output: MatchOutput, report: Dict[str, Any], output_path: str):
        """Save match results to the output directory."""
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        frames = output.to_frames()
        frames["matches"].to_csv(output_dir / "matches.csv", index=False)
        frames["top3"].to_csv(output_dir / "top3.csv", index=False)

        with pd.ExcelWriter(output_dir / "results.xlsx", engine="openpyxl") as writer:
            frames["matches"].to_excel(writer, sheet_name="matches", index=False)
            frames["top3"].to_excel(writer, sheet_name="top3", index=False)

        with open(output_dir / "summary.json", "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)

        save_match_config(self.config.to_dict(), str(output_dir / "config_used.yaml"))

        logger.info(f"Results saved to {output_path}")


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point for RegistryVerify pipeline."""
    parser = argparse.ArgumentParser(description="RegistryVerify customer/registry reconciliation")
    parser.add_argument("--customers", required=True, help="Customer roster (CSV or Excel)")
    parser.add_argument("--registry", required=True, action="append",
                        help="Registry file (CSV or Excel); repeat for several sources")
    parser.add_argument("--config", default="config/registry_verify.yaml", help="Configuration file path")
    parser.add_argument("--output", help="Output directory path")
    parser.add_argument("--log-dir", default="logs", help="Directory for the log file")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args(argv)

    log_dir = Path(args.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "registry_verify.log", encoding="utf-8")
        ]
    )

    try:
        pipeline = RegistryVerifyPipeline(args.config)
        report = pipeline.run_pipeline(
            customers_path=args.customers,
            registry_paths=args.registry,
            output_path=args.output
        )

        summary = report["summary"]
        print("\n" + "="*50)
        print("REGISTRY VERIFICATION SUMMARY")
        print("="*50)
        print(f"Customers: {summary['n_customers']:,}")
        print(f"ALTA: {summary['alta']:,}")
        print(f"REVISAR: {summary['revisar']:,}")
        print(f"SIN: {summary['sin']:,}")
        print(f"Thresholds: alta={summary['thresholds']['alta']}, baja={summary['thresholds']['baja']}")
        print(f"Total Duration: {report['pipeline_execution']['total_duration']:.2f} seconds")
        print("="*50)

    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
