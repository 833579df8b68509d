import argparse
import sys
from pathlib import Path

from app import application
from app import container
from app.exceptions import (
    ImportProcessingError,
    InvalidInputStructureError,
    MalformedRecordError,
)
from app.services.inbox_service import generate_run_id


EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_MALFORMED_RECORD = 2
EXIT_PROCESSING_FAILED = 3


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Import one SKS register file (SHAKCOMPLETE.TXT or SHAKDELTA.TXT) into the institution tables."
    )
    p.add_argument("directory", type=Path, help="Directory holding exactly one register file.")
    p.add_argument("--run-id", default=None, help="Identifier of this run, stored with the import audit.")
    return p


def main(argv: list[str] | None = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    run_id = args.run_id or generate_run_id()

    application.application_init()
    importer = container.get_importer()

    try:
        result = importer.process(args.directory, run_id)
    except InvalidInputStructureError as e:
        print(f"Invalid input structure: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except MalformedRecordError as e:
        print(f"Malformed record: {e}", file=sys.stderr)
        return EXIT_MALFORMED_RECORD
    except ImportProcessingError as e:
        print(f"Import failed: {e}", file=sys.stderr)
        return EXIT_PROCESSING_FAILED

    print(f"Imported {result.records_processed} records from {result.filename} (run {result.run_id})")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
