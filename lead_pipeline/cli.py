"""Command line interface for the lead intake pipeline."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import ConfigurationError, load_configuration
from .contact_status import CONNECTIONS, CallOutcome
from .errors import LeadPipelineError
from .factory import Pipeline, build_pipeline
from .ingestion import export_validation_report
from .models import RecordKind

LOGGER = logging.getLogger(__name__)

_KINDS = {"lead": RecordKind.LEAD, "agent": RecordKind.AGENT}


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        required=True,
        help="Path to the pipeline configuration file (YAML or JSON)",
    )
    common.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )

    parser = argparse.ArgumentParser(prog=prog, description="Ingest, qualify, and convert CRM leads")
    commands = parser.add_subparsers(dest="command", required=True)

    validate = commands.add_parser("validate", parents=[common], help="Validate an upload without writing")
    validate.add_argument("input", help="Path to the lead spreadsheet (CSV or XLSX)")
    validate.add_argument("--preview", help="Write the annotated rows to this CSV/XLSX file")

    upload = commands.add_parser("import", parents=[common], help="Validate an upload and commit its rows")
    upload.add_argument("input", help="Path to the lead spreadsheet (CSV or XLSX)")

    add_lead = commands.add_parser("add-lead", parents=[common], help="Add a single lead")
    add_lead.add_argument("--name", required=True)
    add_lead.add_argument("--phone", required=True)
    add_lead.add_argument("--source", required=True, help="Lead source, e.g. whatsApp or referral")
    add_lead.add_argument("--email")
    add_lead.add_argument("--note")
    add_lead.add_argument("--kam-id")
    add_lead.add_argument("--kam-name")

    call = commands.add_parser("call", parents=[common], help="Record a call outcome")
    call.add_argument("kind", choices=sorted(_KINDS))
    call.add_argument("record_id")
    call.add_argument("connection", choices=CONNECTIONS)
    call.add_argument("--medium", help="Connect medium, e.g. 'on call'")
    call.add_argument("--direction", help="inbound or outbound")
    call.add_argument("--note")

    note = commands.add_parser("note", parents=[common], help="Attach a note to a lead or agent")
    note.add_argument("kind", choices=sorted(_KINDS))
    note.add_argument("record_id")
    note.add_argument("text")
    note.add_argument("--kam-id")

    convert = commands.add_parser("convert", parents=[common], help="Convert a lead into an agent")
    convert.add_argument("lead_id")
    convert.add_argument(
        "--set",
        dest="details",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Verification detail to apply, e.g. firmName='Acme Realty' (repeatable)",
    )

    commands.add_parser(
        "resume-conversions",
        parents=[common],
        help="Finish conversions that were interrupted part-way",
    )

    seed = commands.add_parser("seed-counters", parents=[common], help="Create the identifier counters")
    seed.add_argument("--overwrite", action="store_true", help="Reset counters that already exist")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    pipeline: Optional[Pipeline] = None
    try:
        config = load_configuration(args.config)
        pipeline = build_pipeline(config)
        return _COMMANDS[args.command](pipeline, args)
    except (ConfigurationError, LeadPipelineError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if pipeline is not None:
            pipeline.save()


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _validate(pipeline: Pipeline, args: argparse.Namespace) -> int:
    report = pipeline.intake.validate_file(args.input)
    if args.preview:
        path = export_validation_report(report, args.preview)
        LOGGER.info("Preview written to %s", path.resolve())
    _emit(report.as_dict())
    return 0 if report.ok else 1


def _import(pipeline: Pipeline, args: argparse.Namespace) -> int:
    report, result = pipeline.intake.import_file(args.input)
    _emit({"warnings": report.warnings, **result.as_dict()})
    return 1 if result.failed else 0


def _add_lead(pipeline: Pipeline, args: argparse.Namespace) -> int:
    lead = pipeline.intake.add_lead(
        name=args.name,
        phone=args.phone,
        source=args.source,
        email=args.email,
        note=args.note,
        kam_id=args.kam_id,
        kam_name=args.kam_name,
    )
    _emit(lead.to_document())
    return 0


def _call(pipeline: Pipeline, args: argparse.Namespace) -> int:
    outcome = CallOutcome(args.connection, args.medium, args.direction)
    update = pipeline.activity.record_call_outcome(_KINDS[args.kind], args.record_id, outcome, note=args.note)
    _emit(
        {
            "previousStatus": update.previous_status,
            "contactStatus": update.new_status,
            "entry": update.entry.to_document(),
        }
    )
    return 0


def _note(pipeline: Pipeline, args: argparse.Namespace) -> int:
    note = pipeline.activity.add_note(_KINDS[args.kind], args.record_id, args.text, kam_id=args.kam_id)
    _emit(note.to_document())
    return 0


def _convert(pipeline: Pipeline, args: argparse.Namespace) -> int:
    result = pipeline.converter.convert(args.lead_id, _parse_details(args.details))
    _emit(result.as_dict())
    return 0


def _resume(pipeline: Pipeline, args: argparse.Namespace) -> int:
    results = pipeline.converter.resume_pending()
    _emit([result.as_dict() for result in results])
    return 0


def _seed(pipeline: Pipeline, args: argparse.Namespace) -> int:
    counters = pipeline.allocator.seed_all(overwrite=args.overwrite)
    _emit({kind.value: counter.to_document() for kind, counter in counters.items()})
    return 0


def _parse_details(pairs: List[str]) -> Dict[str, str]:
    details: Dict[str, str] = {}
    for pair in pairs:
        field, sep, value = pair.partition("=")
        if not sep or not field.strip():
            raise ValueError(f"Expected FIELD=VALUE, got '{pair}'")
        details[field.strip()] = value
    return details


_COMMANDS = {
    "validate": _validate,
    "import": _import,
    "add-lead": _add_lead,
    "call": _call,
    "note": _note,
    "convert": _convert,
    "resume-conversions": _resume,
    "seed-counters": _seed,
}


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
