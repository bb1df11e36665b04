"""
File processor service for extracting text from uploaded study material.
Supports: plain text, Markdown and PDF.
"""

import os
import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

import PyPDF2

from eduassist.core.logging_config import get_logger

# Constants
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
SUPPORTED_EXTENSIONS = {'.txt', '.md', '.pdf'}
TEXT_EXTENSIONS = {'.txt', '.md'}

MAX_CONTENT_LENGTH = 12000  # characters handed to the model
TRUNCATION_MARKER = "...(content truncated)"

logger = get_logger(__name__)


class FileProcessingError(Exception):
    """Base exception for upload validation and extraction errors."""
    code = "FileProcessingError"


class FileTooLargeError(FileProcessingError):
    code = "FileTooLarge"


class UnsupportedFileTypeError(FileProcessingError):
    code = "UnsupportedFileType"


class EmptyFileError(FileProcessingError):
    code = "EmptyFile"


class ExtractionFailedError(FileProcessingError):
    code = "ExtractionFailed"


def get_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def validate_file_size(declared_size: int, max_bytes: int = MAX_FILE_SIZE) -> bool:
    """True iff the declared upload size fits within max_bytes."""
    return declared_size <= max_bytes


def validate_file_type(filename: str, allowed: set[str] = SUPPORTED_EXTENSIONS) -> bool:
    """True iff the lower-cased extension of filename is allowed. No content sniffing."""
    return get_extension(filename) in allowed


def validate_upload(filename: str, declared_size: int, max_bytes: int = MAX_FILE_SIZE) -> None:
    """Validate an upload's size and extension before anything touches the disk."""
    size_mb = declared_size / (1024 * 1024)
    logger.debug(f"Validating upload: {filename}, size: {size_mb:.2f} MB")

    if not validate_file_size(declared_size, max_bytes):
        logger.warning(f"File too large: {filename} ({size_mb:.2f} MB)")
        raise FileTooLargeError(
            f"File size exceeds maximum allowed size of {max_bytes // (1024 * 1024)} MB"
        )

    if not validate_file_type(filename):
        ext = get_extension(filename) or "(none)"
        logger.warning(f"Unsupported file type: {ext} for file {filename}")
        raise UnsupportedFileTypeError(
            f"Unsupported file type: {ext}. Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )


def extract_text_from_pdf(file_path: str | Path) -> str:
    """Extract text from a PDF, page by page."""
    try:
        pdf_reader = PyPDF2.PdfReader(str(file_path))
        text_parts = []
        logger.debug(f"Processing PDF with {len(pdf_reader.pages)} pages")
        for page in pdf_reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text)
        logger.debug(f"Extracted text from {len(text_parts)} pages")
        return "\n\n".join(text_parts)
    except Exception as e:
        logger.error(f"PDF extraction failed: {str(e)}")
        raise ExtractionFailedError(f"Failed to extract text from PDF: {str(e)}")


def extract_text_from_text_file(file_path: str | Path) -> str:
    """Read a plain text or Markdown file as UTF-8."""
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Text file read failed: {str(e)}")
        raise ExtractionFailedError(f"Failed to read text file: {str(e)}")


def truncate_content(text: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Clip text to max_length characters, appending TRUNCATION_MARKER when clipped."""
    if len(text) <= max_length:
        return text
    logger.info(f"Truncating extracted content from {len(text)} to {max_length} chars")
    return text[:max_length] + TRUNCATION_MARKER


def extract_text(file_path: str | Path, filename: str) -> str:
    """
    Extract the text content of an uploaded file.

    Args:
        file_path: Where the upload is stored on disk
        filename: Original filename (used to determine file type)

    Returns:
        Extracted text, truncated to MAX_CONTENT_LENGTH characters

    Raises:
        UnsupportedFileTypeError: Extension is not .txt, .md or .pdf
        ExtractionFailedError: The file could not be read or parsed
        EmptyFileError: Nothing but whitespace was extracted
    """
    logger.info(f"Extracting text from: {filename}")
    ext = get_extension(filename)

    if ext == '.pdf':
        text = extract_text_from_pdf(file_path)
    elif ext in TEXT_EXTENSIONS:
        text = extract_text_from_text_file(file_path)
    else:
        raise UnsupportedFileTypeError(f"Unsupported file type: {ext or '(none)'}")

    if not text.strip():
        logger.warning(f"No text extracted from {filename}")
        raise EmptyFileError("File appears to be empty")

    return truncate_content(text)


def measure_upload(file: BinaryIO) -> int:
    """Size of a spooled upload in bytes; leaves the stream at position 0."""
    file.seek(0, os.SEEK_END)
    size = file.tell()
    file.seek(0)
    return size


def ensure_upload_dir(upload_dir: str | Path) -> Path:
    path = Path(upload_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def cleanup_file(file_path: str | Path) -> None:
    """Delete a stored upload. Failures are logged, never raised."""
    try:
        Path(file_path).unlink(missing_ok=True)
        logger.debug(f"Removed upload {file_path}")
    except OSError as e:
        logger.warning(f"File cleanup error for {file_path}: {str(e)}")


@contextmanager
def stored_upload(file: BinaryIO, filename: str, upload_dir: str | Path) -> Iterator[Path]:
    """
    Write an upload stream into upload_dir and yield its path.

    The stored name is a fresh uuid plus the original extension so concurrent
    uploads never collide. The file is removed when the block exits, whether
    it exits normally or by an exception.
    """
    target = ensure_upload_dir(upload_dir) / f"{uuid.uuid4().hex}{get_extension(filename)}"
    try:
        with open(target, "wb") as out:
            shutil.copyfileobj(file, out)
        logger.debug(f"Stored upload {filename} as {target.name}")
        yield target
    finally:
        cleanup_file(target)


def get_supported_formats(max_bytes: int = MAX_FILE_SIZE) -> dict:
    """Return information about supported file formats."""
    return {
        "extensions": sorted(SUPPORTED_EXTENSIONS),
        "max_file_size_bytes": max_bytes,
        "max_file_size_mb": max_bytes // (1024 * 1024),
    }
