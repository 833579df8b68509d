from pathlib import Path
from typing import List

from app.exceptions import InvalidInputStructureError

FULL_SNAPSHOT_FILENAME = "SHAKCOMPLETE.TXT"
DELTA_FILENAME = "SHAKDELTA.TXT"

ACCEPTED_FILENAMES = {FULL_SNAPSHOT_FILENAME.lower(), DELTA_FILENAME.lower()}


def list_input_files(datadir: Path) -> List[Path]:
    try:
        return sorted(p for p in datadir.iterdir() if p.is_file())
    except OSError as e:
        raise InvalidInputStructureError(f"Unable to list input directory {datadir}: {e}") from e


def validate_input_structure(datadir: Path) -> bool:
    """
    True when the directory holds exactly one full snapshot or delta file. An
    empty directory is an error, not merely invalid.
    """
    files = list_input_files(datadir)
    if len(files) == 0:
        raise InvalidInputStructureError(
            f"At least one file should be present in {datadir} at this point."
        )

    return len(files) == 1 and files[0].name.lower() in ACCEPTED_FILENAMES
