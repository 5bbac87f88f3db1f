"""
Scoped write transaction for a single document.

    with document_transaction(path) as txn:
        text = txn.original_text()
        ...            # rewrite
        txn.write(new_text)
        ...            # raise to roll back

On entry the document is leased (lock file) and snapshotted, both in memory
and as an on-disk backup next to the file. The lease is held for the whole
block, reads included. Once the transaction has written, any exception inside
the block restores the original bytes before it propagates. The backup and the
lease are removed on every exit path.
"""
from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import logging
import os
import time

from article_refresher.adapters.markdown_adapter import write_document_text
from article_refresher.errors import DocumentLocked, DocumentModified

logger = logging.getLogger(__name__)


class DocumentTransaction:
    def __init__(self, path: Path, original: bytes, backup_path: Path):
        self.path = path
        self.original = original
        self.backup_path = backup_path
        self.written = False

    def original_text(self) -> str:
        return self.original.decode("utf-8")

    def ensure_unchanged(self) -> None:
        """Raise DocumentModified if the file no longer holds the snapshot bytes."""
        if self.path.read_bytes() != self.original:
            raise DocumentModified(str(self.path))

    def write(self, text: str) -> None:
        self.written = True
        write_document_text(str(self.path), text)

    def restore(self) -> None:
        self.path.write_bytes(self.original)


def _acquire_lease(path: Path) -> Path:
    lock_path = path.with_name(path.name + ".lock")
    try:
        fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        raise DocumentLocked(str(path))
    with os.fdopen(fd, "w") as f:
        f.write(str(os.getpid()))
    return lock_path


def create_backup(path: Path, original: bytes) -> Path:
    backup_path = path.with_name(f"{path.name}.backup.{int(time.time() * 1000)}")
    backup_path.write_bytes(original)
    return backup_path


@contextmanager
def document_transaction(path) -> Iterator[DocumentTransaction]:
    path = Path(path)
    lock_path = _acquire_lease(path)
    try:
        original = path.read_bytes()
        backup_path = create_backup(path, original)
        txn = DocumentTransaction(path, original, backup_path)
        try:
            yield txn
        except BaseException:
            # nothing to undo until this transaction has touched the file
            if txn.written:
                logger.info(f"Restoring {path.name} from snapshot")
                txn.restore()
            raise
        finally:
            backup_path.unlink(missing_ok=True)
    finally:
        lock_path.unlink(missing_ok=True)
