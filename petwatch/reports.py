"""Report submission - wires core validation and shell storage.

Submitting a sighting: validate, reject duplicates from the same device,
upload the photo if there is one, then insert the record.
"""

import logging
from dataclasses import replace

from petwatch.core.errors import DuplicateSubmissionError, ValidationError
from petwatch.core.sighting import SightingReport, is_duplicate_report, validate_report
from petwatch.shell.firestore_client import SightingStore
from petwatch.shell.storage_client import PhotoStorageClient


logger = logging.getLogger(__name__)


def register_sighting(
    store: SightingStore,
    report: SightingReport,
    photo_client: PhotoStorageClient | None = None,
    image_bytes: bytes | None = None,
) -> str:
    """Submit a new sighting.

    Args:
        store: Sighting store
        report: The report to submit
        photo_client: Photo storage (required when image_bytes is given)
        image_bytes: Optional photo to attach

    Returns:
        ID of the new record

    Raises:
        ValidationError: If required fields are missing
        DuplicateSubmissionError: If this device already reported the name
        StoreError: If the photo upload or insert fails
    """
    problems = validate_report(report)
    if image_bytes and photo_client is None:
        problems.append("Photo storage is not configured")
    if problems:
        raise ValidationError(problems)

    existing = store.find_duplicates(report.name, report.device_id)
    if is_duplicate_report(report, existing):
        logger.warning("Duplicate report '%s' from %s", report.name, report.device_id)
        raise DuplicateSubmissionError(report.name, report.device_id)

    if image_bytes:
        report = replace(report, image_url=photo_client.upload(image_bytes))

    return store.insert(report, check_duplicates=False)
