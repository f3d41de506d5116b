import tempfile
from pathlib import Path

from indexer_service.domain.indexer.port.script_store import ScriptStore
from indexer_service.domain.shared.error import NotFoundError, PersistenceError, ValidationError


class LocalScriptStore(ScriptStore):
    """Local filesystem implementation of ScriptStore.

    Keys are relative paths below ``base_path`` (``scripts/{id}.js``).
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _safe_path(self, key: str) -> Path:
        """Resolve key within base_path, rejecting path traversal attempts."""
        if not key or Path(key).is_absolute():
            raise ValidationError(f"Invalid script key: {key!r}", field="key")
        target = self.base_path / key
        if not target.resolve().is_relative_to(self.base_path.resolve()):
            raise ValidationError(f"Invalid script key: {key!r}", field="key")
        return target

    async def put(self, key: str, content: bytes) -> None:
        target = self._safe_path(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # Atomic write: write to temp file then rename
            fd, tmp_path = tempfile.mkstemp(dir=target.parent)
            try:
                with open(fd, "wb") as f:
                    f.write(content)
                Path(tmp_path).replace(target)
            except Exception:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to store script {key}: {e}") from e

    async def get(self, key: str) -> bytes:
        target = self._safe_path(key)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"Script not found: {key}") from None
        except OSError as e:
            raise PersistenceError(f"Failed to read script {key}: {e}") from e

    def locate(self, key: str) -> Path:
        target = self._safe_path(key)
        if not target.is_file():
            raise NotFoundError(f"Script not found: {key}")
        return target
