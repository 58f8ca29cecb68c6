"""Repository base class used by all concrete repositories."""
import contextlib
import copy
import json
import logging
import os
import tempfile
import threading
from typing import Any, Iterator


class BaseRepository:
    """Provides JSON-backed persistence for a single data file.

    Sub-classes call :meth:`_load` to read initial data from disk and
    :meth:`_save` to atomically persist data back.  All repositories keep an
    in-memory copy in ``self.data``; callers mutate that copy inside
    :meth:`transaction` and the change is persisted when the block exits.

    The atomic write uses a write-then-rename strategy so the file is never
    left in a partially-written state.  The re-entrant lock serialises every
    read-modify-write cycle within the process.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._lock = threading.RLock()
        self._log = logging.getLogger(f'fetchfeed.repository.{type(self).__name__}')

    @property
    def path(self) -> str:
        return self._path

    def _load(self, default: Any) -> Any:
        """Load JSON from *self._path*, returning *default* on missing/corrupt file."""
        if os.path.exists(self._path):
            try:
                with open(self._path, 'r', encoding='utf-8') as fh:
                    return json.load(fh)
            except (json.JSONDecodeError, IOError) as exc:
                self._log.warning("Could not load %s: %s", self._path, exc)
        return default

    def _save(self, data: Any) -> None:
        """Atomically write *data* as JSON to *self._path*."""
        dir_name = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(dir_name, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    @contextlib.contextmanager
    def transaction(self) -> Iterator[Any]:
        """Hold the repository lock and persist ``self.data`` on clean exit.

        Nested transactions only save once, when the outermost block exits.
        If the block or the save raises, the outermost transaction restores
        ``self.data`` to what it was on entry and the exception propagates.
        """
        with self._lock:
            depth = getattr(self, '_tx_depth', 0)
            snapshot = copy.deepcopy(self.data) if depth == 0 else None
            self._tx_depth = depth + 1
            try:
                yield self.data
                if depth == 0:
                    self.save()
            except BaseException:
                if depth == 0:
                    self.data = snapshot
                raise
            finally:
                self._tx_depth = depth

    def save(self) -> None:
        """Persist the current in-memory data to disk."""
        with self._lock:
            self._save(self.data)
