"""
Directory operations module for Folio.

A Directory wraps one path. Nothing is cached: each call looks at the
filesystem again, and recursive operations build a new Directory for
every child instead of changing the current one.
"""

import enum
import os
from dataclasses import dataclass, field
from typing import List, Optional

from folio_core.logger import Operation, OperationStatus

from .filesystem import Filesystem


class Traversal(enum.IntFlag):
    """Flags controlling which entries a directory walk visits."""
    # "." and ".." never come out of os.scandir, so this always holds.
    SKIP_DOTS = 1
    SKIP_HIDDEN = 2


@dataclass(frozen=True)
class Directory:
    """A directory path plus the Filesystem used for per-file work."""
    path: str
    filesystem: Filesystem = field(default_factory=Filesystem, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "path", os.fspath(self.path))

    def _child(self, path: str) -> "Directory":
        return Directory(path, self.filesystem)

    def _entries(self, flags: Traversal = Traversal.SKIP_DOTS) -> List[os.DirEntry]:
        with os.scandir(self.path) as it:
            entries = list(it)
        if flags & Traversal.SKIP_HIDDEN:
            entries = [e for e in entries if not e.name.startswith(".")]
        return entries

    def create(self, mode: Optional[int] = None, recursive: bool = False) -> bool:
        """
        Create the directory.

        Args:
            mode: Permission bits (default: create_mode from settings)
            recursive: Also create missing parent directories

        Returns:
            True on success, False on failure (including "already exists")
        """
        if mode is None:
            mode = self.filesystem.settings.create_mode

        try:
            if recursive:
                os.makedirs(self.path, mode)
            else:
                os.mkdir(self.path, mode)
        except OSError as e:
            return self.filesystem._fail(Operation.CREATE, self.path, e, mode=oct(mode))

        self.filesystem._record(Operation.CREATE, self.path, mode=oct(mode), recursive=recursive)
        return True

    def delete(self, preserve: bool = False) -> bool:
        """
        Delete the directory and everything in it.

        Real sub-directories are deleted recursively. Every other entry,
        including a symlink to a directory, is unlinked as a file.

        Args:
            preserve: Keep the (now empty) directory itself

        Returns:
            False if the path is not a listable directory. Otherwise True,
            even when removing the directory itself failed; that failure
            only shows up in the audit log.
        """
        if not self.is_directory():
            return False

        try:
            entries = self._entries()
        except OSError as e:
            return self.filesystem._fail(Operation.DELETE, self.path, e)

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                self._child(entry.path).delete()
            else:
                self.filesystem.delete(entry.path)

        if not preserve:
            try:
                os.rmdir(self.path)
            except OSError as e:
                self.filesystem._fail(Operation.DELETE, self.path, e)
            else:
                self.filesystem._record(Operation.DELETE, self.path)

        return True

    def clean(self) -> bool:
        """Empty the directory, keeping the directory itself."""
        return self.delete(preserve=True)

    def move(self, destination: str) -> bool:
        """Rename the directory. Not atomic across filesystems."""
        try:
            os.rename(self.path, destination)
        except OSError as e:
            return self.filesystem._fail(Operation.MOVE, self.path, e, destination=os.fspath(destination))

        self.filesystem._record(Operation.MOVE, self.path, destination=os.fspath(destination))
        return True

    def copy(self, destination: str, flags: Optional[Traversal] = None) -> bool:
        """
        Copy the directory tree to destination.

        Args:
            destination: Target directory, created (with copy_mode) if absent
            flags: Traversal flags (default: Traversal.SKIP_DOTS)

        Returns:
            True if every entry was copied. False if the source is not a
            directory, the destination lies inside the source, or any entry
            fails; entries copied before the failure are left in place.
        """
        if not self.is_directory():
            return False

        flags = flags or Traversal.SKIP_DOTS
        destination = os.fspath(destination)

        source_real = os.path.realpath(self.path)
        destination_real = os.path.realpath(destination)
        if os.path.commonpath([source_real, destination_real]) == source_real:
            self.filesystem._record(
                Operation.COPY, self.path, OperationStatus.SKIPPED,
                "Destination is inside the source", destination=destination
            )
            return False

        target_dir = Directory(destination, self.filesystem)
        if not target_dir.is_directory():
            if not target_dir.create(self.filesystem.settings.copy_mode):
                return False

        try:
            entries = self._entries(flags)
        except OSError as e:
            return self.filesystem._fail(Operation.COPY, self.path, e, destination=destination)

        for entry in entries:
            target = os.path.join(destination, entry.name)

            if entry.is_dir():
                if not self._child(entry.path).copy(target, flags):
                    return False
            else:
                if not self.filesystem.copy(entry.path, target):
                    return False

        return True

    def size(self) -> int:
        """
        Total size in bytes of all regular files below the directory.

        Symlinks and directory entries count for nothing. Sub-directories
        that cannot be listed are skipped. A non-directory has size 0.
        """
        if not self.is_directory():
            return 0

        try:
            entries = self._entries()
        except OSError as e:
            self.filesystem._record(Operation.READ, self.path, OperationStatus.SKIPPED, f"Error: {e}")
            return 0

        total = 0
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    total += self._child(entry.path).size()
                elif entry.is_file(follow_symlinks=False):
                    total += entry.stat(follow_symlinks=False).st_size
            except OSError:
                # Entry vanished between listing and stat.
                continue

        return total

    def exists(self) -> bool:
        return self.filesystem.exists(self.path)

    def is_directory(self) -> bool:
        """True if the path exists and is a directory."""
        return os.path.isdir(self.path)
