"""Upload validation, naming and storage.

Only files whose extension is on ``ALLOWED_EXTENSIONS`` are accepted. Stored
files are named ``<uuid4 hex><original extension>``; the client's base name is
never used on disk.
"""
import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

from fastapi import Request

from tutor_admin.core import config

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({'png', 'jpg', 'jpeg', 'gif', 'pdf', 'doc', 'docx', 'mp4', 'm4a', 'wav'})
CHUNK_SIZE = 64 * 1024
PARTIAL_SUFFIX = '.part'


class UploadRejected(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DisallowedFileType(UploadRejected):
    def __init__(self, filename: str | None) -> None:
        super().__init__('File type not allowed.')
        self.filename = filename


class UploadTooLarge(UploadRejected):
    def __init__(self, max_bytes: int) -> None:
        super().__init__(f'File is too large (limit {max_bytes // (1024 * 1024)} MB).')
        self.max_bytes = max_bytes


def _extension(filename: str | None) -> str:
    """Extension of the base name including its dot, as given (``'.JPG'``), or ``''``."""
    if not filename:
        return ''
    base = os.path.basename(filename.replace('\\', '/'))
    _, ext = os.path.splitext(base)
    return ext if len(ext) > 1 else ''


def is_allowed(filename: str | None) -> bool:
    ext = _extension(filename)
    return ext[1:].lower() in ALLOWED_EXTENSIONS


def make_storage_name(filename: str) -> str:
    return f'{uuid.uuid4().hex}{_extension(filename)}'


def has_file(upload) -> bool:
    """True when a multipart field actually carried a file."""
    return upload is not None and bool(getattr(upload, 'filename', None))


class UploadStore:
    def __init__(self, directory: str, max_bytes: int = config.MAX_UPLOAD_BYTES) -> None:
        self.directory = os.path.abspath(directory)
        self.max_bytes = max_bytes

    def ensure_directory(self) -> None:
        os.makedirs(self.directory, exist_ok=True)

    def path_for(self, storage_name: str) -> str:
        if (
            not storage_name
            or storage_name != os.path.basename(storage_name)
            or '\\' in storage_name
            or storage_name.startswith('.')
        ):
            raise FileNotFoundError(storage_name)
        return os.path.join(self.directory, storage_name)

    def discard(self, storage_name: str | None) -> None:
        if not storage_name:
            return
        try:
            os.remove(self.path_for(storage_name))
        except FileNotFoundError:
            pass

    def _write_capped(self, stream: BinaryIO, destination: str) -> int:
        written = 0
        with open(destination, 'wb') as handle:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self.max_bytes:
                    raise UploadTooLarge(self.max_bytes)
                handle.write(chunk)
        return written

    @contextmanager
    def receive(self, filename: str | None, stream: BinaryIO) -> Iterator[str]:
        """Store an incoming file and yield its storage name.

        The type is checked before anything touches the disk. Bytes go to a hidden
        temporary file that is renamed once the whole body fits under the cap. If
        the block using the name raises, the stored file is removed again, so a
        failed database write never leaves an orphan behind.
        """
        if not is_allowed(filename):
            logger.info('Rejected upload %r: disallowed type', filename)
            raise DisallowedFileType(filename)

        if not os.path.isdir(self.directory):
            raise RuntimeError(f'Upload directory {self.directory} does not exist.')

        storage_name = make_storage_name(filename)
        final_path = self.path_for(storage_name)
        partial_path = os.path.join(self.directory, f'.{storage_name}{PARTIAL_SUFFIX}')

        try:
            size = self._write_capped(stream, partial_path)
            os.replace(partial_path, final_path)
        except BaseException as exc:
            if os.path.exists(partial_path):
                os.remove(partial_path)
            if isinstance(exc, UploadTooLarge):
                logger.info('Rejected upload %r: over %s bytes', filename, self.max_bytes)
            raise

        logger.debug('Stored upload %r as %s (%s bytes)', filename, storage_name, size)
        try:
            yield storage_name
        except BaseException:
            self.discard(storage_name)
            raise

    @contextmanager
    def receive_optional(self, upload) -> Iterator[str | None]:
        """``receive`` for an optional multipart field; yields ``None`` when no file was sent."""
        if not has_file(upload):
            yield None
            return
        with self.receive(upload.filename, upload.file) as storage_name:
            yield storage_name


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.upload_store
