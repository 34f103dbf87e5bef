"""
JSON storage for the last known release of each source.

The whole state is read once at the start of a run and written back
once at the end, replacing the previous file atomically.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from release_watcher.errors import StateCorruptError, StateWriteError
from release_watcher.models import ReleaseRecord, ReleaseState

logger = logging.getLogger(__name__)


class JsonStateStore:
    """
    File-backed release state.

    The file holds a JSON object mapping each source name to its last
    recorded release ``{id, title, link, published}``.
    """

    def __init__(self, path: str | Path):
        """
        Initialize the store with the state file path.

        Parameters
        ----------
        path : str | Path
            Path to the JSON state file.
        """
        self.path = Path(path)

    def load(self) -> ReleaseState:
        """
        Load the persisted state.

        Returns
        -------
        ReleaseState
            Last recorded release per source. Empty if the file does
            not exist yet.

        Raises
        ------
        StateCorruptError
            If the file cannot be read or does not hold a valid state.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No state file at %s, starting with empty state", self.path)
            return {}
        except OSError as e:
            raise StateCorruptError(f"Cannot read state file {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StateCorruptError(f"State file {self.path} is not valid UTF-8: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateCorruptError(f"State file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise StateCorruptError(
                f"State file {self.path} must contain a JSON object, "
                f"got {type(data).__name__}"
            )

        state: ReleaseState = {}
        for source, record in data.items():
            try:
                state[source] = ReleaseRecord.from_dict(record)
            except ValueError as e:
                raise StateCorruptError(
                    f"Invalid entry for '{source}' in state file {self.path}: {e}"
                ) from e

        logger.debug("Loaded state for %d source(s) from %s", len(state), self.path)
        return state

    def save(self, state: ReleaseState) -> None:
        """
        Write the full state, replacing the previous file.

        Parent directories are created if needed. The snapshot is
        written to a temporary file first, then moved into place.

        Parameters
        ----------
        state : ReleaseState
            Last recorded release per source.

        Raises
        ------
        StateWriteError
            If the file cannot be written.
        """
        data = {source: record.to_dict() for source, record in state.items()}
        tmp_path: str | None = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StateWriteError(f"Cannot write state file {self.path}: {e}") from e

        logger.info("Saved state for %d source(s) to %s", len(state), self.path)
