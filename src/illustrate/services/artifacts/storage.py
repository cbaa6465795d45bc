"""Flat-directory media store keyed by artifact name."""

from pathlib import Path

import structlog

from illustrate.services.exceptions import StorageError

logger = structlog.get_logger(__name__)


class MediaStore:
    """Stores media files as ``{root}/{name}.{extension}``.

    Every artifact of a generation shares the generation id as its name
    prefix (``{id}``, ``{id}_o50``, ``{id}_frame`` ...), which is what
    ``purge`` relies on.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str, extension: str = "png") -> Path:
        return self.root / f"{name}.{extension}"

    def exists(self, name: str, extension: str = "png") -> bool:
        return self.path_for(name, extension).exists()

    def save(self, content: bytes, name: str, extension: str = "png") -> Path:
        """Write ``content`` and return its path.

        Raises:
            StorageError: If the file cannot be written
        """
        path = self.path_for(name, extension)
        try:
            path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Could not save {path.name}: {e}") from e
        return path

    def load(self, name: str, extension: str = "png") -> bytes | None:
        """Read a stored file; None if it does not exist."""
        path = self.path_for(name, extension)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {path.name}: {e}") from e

    def delete(self, name: str, extension: str = "png") -> bool:
        path = self.path_for(name, extension)
        if not path.exists():
            return False
        path.unlink()
        return True

    def purge(self, artifact_id: str) -> int:
        """Delete every file belonging to ``artifact_id``. Returns the count removed."""
        removed = 0
        for path in self.root.glob(f"{artifact_id}*"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("media.purge.failed", path=str(path), error=str(e))
        return removed
