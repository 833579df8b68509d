import logging
from typing import Iterable

from app.exceptions import MalformedRecordError
from app.models.institution.dataset import Dataset
from app.services.sks.record_decoder import SKIP, decode

logger = logging.getLogger(__name__)


def build(lines: Iterable[str]) -> Dataset:
    """
    Decodes all lines into one dataset in file order. Skipped lines are dropped,
    the first malformed line aborts the build.
    """
    dataset = Dataset()
    skipped = 0

    for line_number, line in enumerate(lines, start=1):
        try:
            record = decode(line)
        except MalformedRecordError as e:
            raise e.with_line_number(line_number) from e

        if record is SKIP:
            skipped += 1
            continue
        dataset.add(record)

    logger.debug(f"Built dataset with {len(dataset)} records, skipped {skipped} lines")
    return dataset
