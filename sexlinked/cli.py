"""Command line entrypoint for the sex-linked scaffold scan."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, Sequence

from . import iox, run
from .config import SEXES, get_pipeline_ctx
from .errors import SexLinkageError

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:  # pragma: no cover - argparse sanitises this path in tests
        raise argparse.ArgumentTypeError("Expected an integer value") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be a positive integer")
    return parsed


def _sex_label(value: str) -> str:
    for sex in SEXES:
        if value.strip().lower() == sex.lower():
            return sex
    raise argparse.ArgumentTypeError(f"Expected one of {', '.join(SEXES)}")


def _scaffold_path(value: str):
    scaffold, sep, path = value.partition("=")
    if not sep or not scaffold or not path:
        raise argparse.ArgumentTypeError("Expected SCAFFOLD=PATH")
    return scaffold, path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sexlinked",
        description="Find scaffolds whose heterozygosity differs between sexes.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    an = sub.add_parser("analyze", help="Compare heterozygosity between sexes per scaffold.")
    an.add_argument("het", help="Tab-separated table: Scaffold, Indv, O(HOM), E(HOM), N, F.")
    an.add_argument("sex", help="Tab-separated table: Indv, Sex.")
    an.add_argument("--out-dir", default="sexlinked_results", help="Directory for result tables and plots.")
    an.add_argument("--min-loci", type=int, help="Records need strictly more loci than this (default 100).")
    an.add_argument("--alpha", type=float, help="Significance threshold (default 0.001).")
    an.add_argument(
        "--heterogametic-sex",
        type=_sex_label,
        help="Sex expected to be nearly homozygous on sex-linked scaffolds: Female for ZW, Male for XY.",
    )
    an.add_argument(
        "--linkage-threshold",
        type=float,
        help="Maximum mean heterozygosity of the heterogametic sex for a candidate (default 0.05).",
    )
    an.add_argument("--workers", type=_positive_int, help="Worker threads for per-scaffold tests.")
    an.add_argument(
        "--fdr",
        choices=["fdr_bh", "fdr_by", "bonferroni", "holm"],
        help="Add a multiple-testing adjusted q.value column.",
    )
    an.add_argument(
        "--strict",
        action="store_true",
        help="Abort when a scaffold has fewer than 2 observations per sex instead of skipping it.",
    )
    an.add_argument("--no-plots", action="store_true", help="Skip the scatter plots.")

    co = sub.add_parser("combine", help="Concatenate per-scaffold het tables into one table.")
    co.add_argument("output", help="Path of the combined table.")
    co.add_argument("tables", nargs="+", type=_scaffold_path, metavar="SCAFFOLD=PATH")
    co.add_argument("--workers", type=_positive_int, default=1, help="Worker threads for reading.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    return {
        "min_loci": args.min_loci,
        "alpha": args.alpha,
        "heterogametic_sex": args.heterogametic_sex,
        "linkage_threshold": args.linkage_threshold,
        "max_workers": args.workers,
        "fdr_method": args.fdr,
        "strict_sample_size": True if args.strict else None,
    }


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    try:
        if args.command == "combine":
            table = iox.combine_scaffold_tables(dict(args.tables), max_workers=args.workers)
            iox.write_table(args.output, table)
            return 0
        config = get_pipeline_ctx(config_overrides(args))
        result = run.run_pipeline(args.het, args.sex, args.out_dir, config, make_plots=not args.no_plots)
    except (SexLinkageError, ValueError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    for path in result.outputs:
        logger.info("  -> %s", path)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI execution
    sys.exit(main())
