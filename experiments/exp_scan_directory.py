"""
Experiment: Batch Scan of ID Card Photos

Scans every image in a directory, optionally verifies each extracted
name against an expected profile name, and writes a JSON report with
per-image results and summary rates.

Expected profile names are read from a CSV with columns
``image,profile_name``. With ``--dump_variants`` the four preprocessing
variants of each upright photo are written next to the report, which is
the quickest way to see why a photo fails.
"""

import sys
import argparse
from pathlib import Path
from typing import Dict, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cardscan import CardScanner, verify_name
from cardscan.preprocessing import build_variants, generate_variants, prepare_base
from cardscan.utils.config import Config, load_config
from cardscan.utils.io import (
    as_image_buffer,
    discover_images,
    load_profile_names,
    save_image,
    save_json,
    UnusableImageError,
)
from cardscan.utils.logger import ScanProgress, setup_logger


def dump_variants(image_path: Path, output_dir: Path, config: Config) -> None:
    """
    Save the preprocessing variants of an upright photo.

    Args:
        image_path: Card photo
        output_dir: Directory for the variant images
        config: Scanner configuration
    """
    try:
        image = as_image_buffer(image_path)
    except UnusableImageError:
        return

    base = prepare_base(image, config.preprocessing.target_min_dim)

    for variant, processed in generate_variants(base, build_variants(config.preprocessing)):
        save_image(processed, output_dir / f"{image_path.stem}_{variant.name}.png")


def run_experiment(
    data_dir: str,
    output_dir: str,
    config_path: Optional[str] = None,
    names_csv: Optional[str] = None,
    num_workers: int = 1,
    dump: bool = False
) -> Dict:
    """
    Run the batch scan.

    Args:
        data_dir: Directory of card photos
        output_dir: Directory for the report
        config_path: Optional path to config file
        names_csv: Optional CSV of expected profile names
        num_workers: Number of concurrent scans
        dump: Whether to save preprocessing variants

    Returns:
        The report dictionary
    """
    config = load_config(config_path) if config_path else Config()
    logger = setup_logger(
        "cardscan",
        level=config.logging.level,
        log_dir=config.logging.log_dir,
        console_output=config.logging.console_output
    )
    logger.info("Starting batch scan experiment")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    images = discover_images(data_dir)
    profile_names = load_profile_names(names_csv) if names_csv else {}
    logger.info(f"Found {len(images)} images in {data_dir}")

    records = []
    tracker = ScanProgress(len(images), logger)

    with CardScanner(config=config, max_workers=num_workers) as scanner:
        jobs = [(path, scanner.submit(path)) for path in images]

        for path, job in jobs:
            result = job.result()
            record = {"image": path.name, "scan": result.to_dict()}

            expected = profile_names.get(path.name)
            if expected is not None:
                record["profile_name"] = expected
                record["verification"] = verify_name(expected, result).to_dict()

            if dump:
                dump_variants(path, output_path / "variants", config)

            records.append(record)
            tracker.update(result.error_kind.value if result.error_kind else "valid")

    elapsed = tracker.finish()

    total = len(records)
    valid = sum(1 for r in records if r["scan"]["is_valid"])
    with_id = sum(1 for r in records if r["scan"]["id_number"])
    verified = [r for r in records if "verification" in r]
    matched = sum(1 for r in verified if r["verification"]["is_match"])

    summary = {
        "images": total,
        "valid_scans": valid,
        "valid_rate": valid / total if total else 0.0,
        "id_rate": with_id / total if total else 0.0,
        "verified": len(verified),
        "match_rate": matched / len(verified) if verified else 0.0,
        "elapsed_seconds": elapsed,
    }

    report = {"summary": summary, "results": records}
    save_json(report, output_path / "scan_report.json")

    print("\n" + "=" * 60)
    print("BATCH SCAN RESULTS")
    print("=" * 60)
    for key, value in summary.items():
        if isinstance(value, float):
            print(f"  {key}: {value:.3f}")
        else:
            print(f"  {key}: {value}")

    logger.info(f"Results saved to {output_path}")

    return report


def main():
    parser = argparse.ArgumentParser(
        description="Batch scan of ID card photos"
    )
    parser.add_argument(
        "--data_dir",
        type=str,
        required=True,
        help="Directory of card photos"
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="results/scan_directory",
        help="Output directory for results"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--names_csv",
        type=str,
        default=None,
        help="CSV with image,profile_name columns"
    )
    parser.add_argument(
        "--num_workers",
        type=int,
        default=1,
        help="Number of concurrent scans"
    )
    parser.add_argument(
        "--dump_variants",
        action="store_true",
        help="Save preprocessing variants of each photo"
    )

    args = parser.parse_args()

    run_experiment(
        data_dir=args.data_dir,
        output_dir=args.output_dir,
        config_path=args.config,
        names_csv=args.names_csv,
        num_workers=args.num_workers,
        dump=args.dump_variants
    )


if __name__ == "__main__":
    main()
