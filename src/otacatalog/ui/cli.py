from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from otacatalog.adapters.manifest import (
    extract_extra_metas_block,
    parse_extra_metas_json,
    record_to_json,
)
from otacatalog.app import add_images, check_catalogs, find_records, read_image
from otacatalog.config import ReconcileConfig, configure_logging, get_reconcile_config
from otacatalog.domain.model import Tier, UniformExtraMetas
from otacatalog.domain.reconciliation import Accepted, RejectionReason

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from otacatalog.domain.model import ExtraMetasSource

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain the OTA firmware image catalogs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Reconcile image files into the catalogs")
    add.add_argument("files", nargs="+", type=Path, help="OTA image files to add")
    add.add_argument(
        "--manufacturer",
        type=str,
        help="Manufacturer subdirectory (defaults to each file's parent directory name)",
    )
    metas = add.add_mutually_exclusive_group()
    metas.add_argument(
        "--extra-metas",
        type=str,
        help="Extra metas as a JSON object, or an array of objects keyed by fileName",
    )
    metas.add_argument(
        "--extra-metas-file",
        type=Path,
        help="File holding the extra metas JSON",
    )
    metas.add_argument(
        "--description-file",
        type=Path,
        help="Free text (e.g. a pull request body) with the extra metas in a ```json block",
    )
    add.add_argument(
        "--original-url",
        type=str,
        help="Source location recorded as originalUrl unless extra metas set one",
    )
    add.add_argument(
        "--verify-size",
        action="store_true",
        help="Reject images whose sub-elements do not add up to totalImageSize",
    )

    header = subparsers.add_parser("header", help="Print the decoded header of an image")
    header.add_argument("file", type=Path, help="OTA image file")
    header.add_argument(
        "--verify-size",
        action="store_true",
        help="Also walk the sub-elements and check totalImageSize",
    )

    check = subparsers.add_parser(
        "check",
        help="Find records whose file is missing and files no record lists",
    )
    repair = check.add_mutually_exclusive_group()
    repair.add_argument(
        "--prune",
        action="store_true",
        help="Drop records whose file is missing and delete unlisted files",
    )
    repair.add_argument(
        "--set-aside",
        action="store_true",
        help="Move unlisted files to the not-in-manifest directories",
    )

    match = subparsers.add_parser("match", help="List catalog records for an identity")
    match.add_argument("tier", choices=[tier.value for tier in Tier], help="Catalog tier")
    match.add_argument("image_type", type=_parse_int, help="Image type (decimal or 0x hex)")
    match.add_argument(
        "manufacturer_code",
        type=_parse_int,
        help="Manufacturer code (decimal or 0x hex)",
    )
    match.add_argument("--model-id", type=str, help="Only records for this model id")
    match.add_argument(
        "--manufacturer-name",
        type=str,
        help="Only records listing this manufacturer name",
    )

    return parser.parse_args(list(argv))


def _parse_int(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from exc


def _load_extra_metas(args: argparse.Namespace) -> ExtraMetasSource:
    if args.extra_metas_file is not None:
        return parse_extra_metas_json(args.extra_metas_file.read_text(encoding="utf-8"))
    if args.description_file is not None:
        body = args.description_file.read_text(encoding="utf-8")
        return parse_extra_metas_json(extract_extra_metas_block(body))
    return parse_extra_metas_json(args.extra_metas)


def _run_add(args: argparse.Namespace, extra_metas: ExtraMetasSource) -> int:
    reconcile = get_reconcile_config()
    if args.verify_size:
        reconcile = ReconcileConfig(verify_size=True)
    result = add_images(
        args.files,
        manufacturer=args.manufacturer,
        extra_metas=extra_metas,
        original_url=args.original_url,
        reconcile=reconcile,
    )
    for submission, outcome in result.outcomes:
        if isinstance(outcome, Accepted):
            log.info(
                "[%s:%s] %s into %s catalog as version %s",
                submission.manufacturer,
                submission.file_name,
                outcome.status,
                outcome.tier,
                outcome.record.file_version,
            )
        else:
            log.warning(
                "[%s:%s] rejected (%s): %s",
                submission.manufacturer,
                submission.file_name,
                outcome.reason,
                outcome.detail,
            )
    if result.failed or result.rejected(RejectionReason.CONFLICT):
        return 1
    return 0


def _run_check(args: argparse.Namespace) -> int:
    report = check_catalogs(prune=args.prune, set_aside=args.set_aside)
    for tier in (Tier.CURRENT, Tier.PREVIOUS):
        log.info(
            "%s: missing=%s, unlisted=%s",
            tier,
            len(report.missing.get(tier, [])),
            len(report.unlisted.get(tier, [])),
        )
    return 0 if args.prune or args.set_aside or report.clean else 1


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    extra_metas: ExtraMetasSource = UniformExtraMetas()
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "add":
            extra_metas = _load_extra_metas(parsed_args)
    except (ValueError, OSError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "add":
            code = _run_add(parsed_args, extra_metas)
        elif parsed_args.command == "header":
            image = read_image(parsed_args.file, verify_size=parsed_args.verify_size)
            print(json.dumps(image.header.to_dict(), indent=2, ensure_ascii=False))  # noqa: T201
            code = 0
        elif parsed_args.command == "check":
            code = _run_check(parsed_args)
        elif parsed_args.command == "match":
            records = find_records(
                Tier(parsed_args.tier),
                image_type=parsed_args.image_type,
                manufacturer_code=parsed_args.manufacturer_code,
                model_id=parsed_args.model_id,
                manufacturer_name=parsed_args.manufacturer_name,
            )
            payload = [record_to_json(record) for record in records]
            print(json.dumps(payload, indent=2, ensure_ascii=False))  # noqa: T201
            code = 0
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
