from __future__ import annotations

import contextlib
import os
import secrets
import signal
from pathlib import Path

from click import UsageError

from .. import APP_NAME

_HANDLED_SIGNALS = {signal.SIGINT, signal.SIGTERM}


class IgnoreInterrupt:
    def __init__(self):
        self._original_handlers = {}

    def __enter__(self):
        self._original_handlers = {
            sig: signal.signal(sig, signal.SIG_IGN) for sig in _HANDLED_SIGNALS
        }
        return self

    def __exit__(self, exc_type, exc_value, tb):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)


class AtomicOutput:
    """Hands out a temporary path next to `path` and moves it into place
    only if the block exits cleanly. The target is never left half-written.
    """

    def __init__(self, path: str | Path):
        self._target = Path(path)
        self._working_path: Path | None = None

    def __enter__(self) -> Path:
        parent = self._target.parent
        if not parent.is_dir():
            raise UsageError(f"Output directory '{parent}' does not exist.")
        self._working_path = parent / (
            f".{self._target.name}.{APP_NAME}-{secrets.token_hex(3)}"
        )
        return self._working_path

    def __exit__(self, exc_type, exc_value, tb):
        if not self._working_path:
            return
        try:
            if exc_type is None:
                self._commit()
        finally:
            with contextlib.suppress(FileNotFoundError):
                self._working_path.unlink()

    def _commit(self):
        assert self._working_path is not None
        with IgnoreInterrupt():
            # Same directory, so this is a rename, not a copy
            os.replace(self._working_path, self._target)
