"""
File operations module for Folio.

Thin wrappers around single filesystem calls. Every method takes the
path(s) it works on; failures come back as False rather than exceptions,
with the underlying error recorded in the audit log when one is attached.
"""

import fcntl
import hashlib
import mimetypes
import os
import shutil
import stat
from pathlib import Path
from typing import Iterable, List, Optional, Union

from folio_core.config import Settings
from folio_core.logger import AuditLogger, Operation, OperationStatus


Paths = Union[str, "os.PathLike[str]", Iterable[Union[str, "os.PathLike[str]"]]]
Data = Union[str, bytes]

_CHUNK_SIZE = 64 * 1024


class Filesystem:
    """Stateless file operations with boolean/sentinel results."""

    def __init__(self, settings: Optional[Settings] = None, logger: Optional[AuditLogger] = None):
        """
        Initialize Filesystem.

        Args:
            settings: Settings instance (defaults are used if omitted)
            logger: Audit logger; when omitted one is created only if
                auditing is enabled in the settings
        """
        self.settings = settings or Settings()
        self.logger = logger
        if self.logger is None and self.settings.audit_enabled:
            self.logger = AuditLogger(log_path=self.settings.audit_log_path)

    def _record(
        self,
        operation: Operation,
        target,
        status: OperationStatus = OperationStatus.EXECUTED,
        result: Optional[str] = None,
        **metadata
    ) -> None:
        if self.logger is None:
            return
        # The audit log never changes an operation's result.
        try:
            self.logger.log_operation(
                operation=operation,
                target=os.fspath(target),
                status=status,
                result=result,
                metadata=metadata
            )
        except OSError:
            pass

    def _fail(self, operation: Operation, target, error: Exception, **metadata) -> bool:
        self._record(operation, target, OperationStatus.FAILED, f"Error: {error}", **metadata)
        return False

    @staticmethod
    def _paths(paths: Paths) -> List[str]:
        if isinstance(paths, (str, os.PathLike)):
            return [os.fspath(paths)]
        return [os.fspath(p) for p in paths]

    def _to_bytes(self, data: Data) -> bytes:
        if isinstance(data, str):
            return data.encode(self.settings.encoding)
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)
        raise TypeError(f"Expected str or bytes, got {type(data).__name__}")

    # Predicates

    def is_file(self, path: str) -> bool:
        """True if the path exists and is a regular file."""
        return os.path.isfile(path)

    def is_directory(self, path: str) -> bool:
        """True if the path exists and is a directory."""
        return os.path.isdir(path)

    def is_readable(self, path: str) -> bool:
        return os.access(path, os.R_OK)

    def is_writable(self, path: str) -> bool:
        return os.access(path, os.W_OK)

    def is_executable(self, path: str) -> bool:
        return os.access(path, os.X_OK)

    def is_stream(self, path: str) -> bool:
        """True if the path looks like a stream URI (contains "://")."""
        return "://" in os.fspath(path)

    def exists(self, paths: Paths) -> bool:
        """
        Check that every given path exists.

        Args:
            paths: A path, or an iterable of paths

        Returns:
            False as soon as one path is missing, True otherwise
        """
        for path in self._paths(paths):
            if not os.path.exists(path):
                return False
        return True

    # Content

    def put(self, path: str, data: Data, lock: bool = False) -> Union[int, bool]:
        """
        Write data to a file, replacing its content.

        Args:
            path: Path to the file
            data: Text (encoded with the configured encoding) or bytes
            lock: Hold an exclusive advisory lock while writing

        Returns:
            Number of bytes written, or False on failure
        """
        payload = self._to_bytes(data)

        try:
            if lock:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o666)
                with os.fdopen(fd, "wb") as f:
                    # Truncate only once the lock is held.
                    fcntl.flock(f, fcntl.LOCK_EX)
                    f.truncate(0)
                    written = f.write(payload)
            else:
                with open(path, "wb") as f:
                    written = f.write(payload)
        except OSError as e:
            return self._fail(Operation.WRITE, path, e, lock=lock)

        self._record(Operation.WRITE, path, result=f"{written} bytes written", lock=lock)
        return written

    def append(self, path: str, data: Data) -> Union[int, bool]:
        """
        Append data to a file, creating it if needed.

        Returns:
            Number of bytes written, or False on failure
        """
        payload = self._to_bytes(data)

        try:
            with open(path, "ab") as f:
                written = f.write(payload)
        except OSError as e:
            return self._fail(Operation.WRITE, path, e, mode="append")

        self._record(Operation.WRITE, path, result=f"{written} bytes appended", mode="append")
        return written

    def prepend(self, path: str, data: Data) -> Union[int, bool]:
        """
        Prepend data to a file.

        The current content is read and written back after the new data in a
        single put. A missing or unreadable file counts as empty.

        Returns:
            Number of bytes written, or False on failure
        """
        existing = b""
        if self.exists(path):
            try:
                with open(path, "rb") as f:
                    existing = f.read()
            except OSError as e:
                self._record(Operation.READ, path, OperationStatus.FAILED, f"Error: {e}")

        return self.put(path, self._to_bytes(data) + existing)

    def get(self, path: str, encoding: Optional[str] = None) -> Union[str, bool]:
        """
        Get the contents of a file.

        Args:
            path: Path to the file
            encoding: Text encoding (default: from settings)

        Returns:
            File contents, or False if the file cannot be read or decoded.
            An empty file returns "", so compare against False with `is`.
        """
        try:
            with open(path, "rb") as f:
                raw = f.read()
            return raw.decode(encoding or self.settings.encoding)
        except (OSError, UnicodeDecodeError) as e:
            return self._fail(Operation.READ, path, e)

    def hash(self, path: str, raw_output: bool = False) -> Union[str, bytes, bool]:
        """
        Get the digest of a file's content.

        Args:
            path: Path to the file
            raw_output: Return raw digest bytes instead of a hex string

        Returns:
            The digest, or False on failure
        """
        digest = hashlib.new(self.settings.hash_algorithm)
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as e:
            return self._fail(Operation.HASH, path, e, algorithm=self.settings.hash_algorithm)

        return digest.digest() if raw_output else digest.hexdigest()

    # Entries

    def delete(self, paths: Paths) -> bool:
        """
        Delete the file(s) at the given path(s).

        Every path is attempted even if an earlier one fails.

        Args:
            paths: A path, or an iterable of paths

        Returns:
            True only if every deletion succeeded
        """
        result = True

        for path in self._paths(paths):
            try:
                os.unlink(path)
            except OSError as e:
                self._fail(Operation.DELETE, path, e)
                result = False
            else:
                self._record(Operation.DELETE, path)

        return result

    def copy(self, path: str, destination: str) -> bool:
        """Copy a file's content to destination, overwriting it."""
        try:
            shutil.copyfile(path, destination)
        except OSError as e:
            return self._fail(Operation.COPY, path, e, destination=os.fspath(destination))

        self._record(Operation.COPY, path, destination=os.fspath(destination))
        return True

    def move(self, path: str, destination: str) -> bool:
        """Rename a file. Not atomic across filesystems."""
        try:
            os.rename(path, destination)
        except OSError as e:
            return self._fail(Operation.MOVE, path, e, destination=os.fspath(destination))

        self._record(Operation.MOVE, path, destination=os.fspath(destination))
        return True

    # Metadata

    def size(self, path: str) -> Union[int, bool]:
        """Size of the file in bytes, or False on failure."""
        try:
            return os.path.getsize(path)
        except OSError:
            return False

    def last_modified(self, path: str) -> Union[int, bool]:
        """Modification time as epoch seconds, or False on failure."""
        try:
            return int(os.path.getmtime(path))
        except OSError:
            return False

    def type(self, path: str) -> Union[str, bool]:
        """
        Type of the entry, without following symlinks.

        Returns:
            One of "file", "dir", "link", "fifo", "char", "block",
            "socket", "unknown"; or False if the path does not exist
        """
        try:
            mode = os.lstat(path).st_mode
        except OSError:
            return False

        if stat.S_ISLNK(mode):
            return "link"
        if stat.S_ISDIR(mode):
            return "dir"
        if stat.S_ISREG(mode):
            return "file"
        if stat.S_ISFIFO(mode):
            return "fifo"
        if stat.S_ISCHR(mode):
            return "char"
        if stat.S_ISBLK(mode):
            return "block"
        if stat.S_ISSOCK(mode):
            return "socket"
        return "unknown"

    def mime_type(self, path: str) -> Union[str, bool]:
        """MIME type guessed from the file name, or False if unknown."""
        guessed, _ = mimetypes.guess_type(os.fspath(path))
        return guessed or False

    def name(self, path: str) -> str:
        """File name without its extension."""
        return Path(path).stem

    def basename(self, path: str) -> str:
        return os.path.basename(path)

    def extension(self, path: str) -> str:
        """Extension without the leading dot ("" if none)."""
        return Path(path).suffix.lstrip(".")

    def dirname(self, path: str) -> str:
        return os.path.dirname(path)
