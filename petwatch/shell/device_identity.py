"""Device identity - Imperative Shell.

Provides a best-effort stable identifier for this installation. It tags
submitted reports and is not a credential: anyone can claim any ID.
"""

import logging
import os
import uuid
from pathlib import Path


logger = logging.getLogger(__name__)


DEVICE_ID_ENV = "PETWATCH_DEVICE_ID"
DEFAULT_DEVICE_ID_PATH = Path.home() / ".petwatch" / "device_id"

# Fallback for when the identity file cannot be written
_process_device_id: str | None = None


def get_device_id(path: str | Path | None = None) -> str:
    """Return this installation's device ID.

    Order of precedence: PETWATCH_DEVICE_ID environment variable, the ID
    stored in `path`, a new ID written to `path`. If the file cannot be
    written the new ID is still stable for the life of the process.

    Args:
        path: Identity file (defaults to ~/.petwatch/device_id)

    Returns:
        Device ID string
    """
    global _process_device_id

    env_id = os.environ.get(DEVICE_ID_ENV, "").strip()
    if env_id:
        return env_id

    id_path = Path(path) if path else DEFAULT_DEVICE_ID_PATH

    try:
        stored = id_path.read_text().strip()
        if stored:
            return stored
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not read device ID from %s: %s", id_path, e)

    if _process_device_id is None:
        _process_device_id = uuid.uuid4().hex
    device_id = _process_device_id

    try:
        id_path.parent.mkdir(parents=True, exist_ok=True)
        id_path.write_text(device_id + "\n")
        logger.info("Created device ID at %s", id_path)
    except OSError as e:
        logger.warning("Could not persist device ID to %s: %s", id_path, e)

    return device_id
