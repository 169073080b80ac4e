import io
import logging
import zipfile
import zlib
from pathlib import PurePosixPath
from typing import List, Tuple

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract

from resumerag.utils.exceptions import (
    CorruptArchiveError,
    CorruptDocumentError,
    UnsupportedFormatError,
)

logging.getLogger("pdfminer").setLevel(logging.ERROR)

SUPPORTED_FORMATS = ("pdf", "docx", "txt")
ARCHIVE_FORMATS = ("zip",)


def normalize_format(declared_format: str) -> str:
    return (declared_format or "").strip().lower().lstrip(".")


def format_from_filename(filename: str) -> str:
    return normalize_format(PurePosixPath(filename or "").suffix)


def read_txt(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CorruptDocumentError("txt", str(e), cause=e) from e


def read_docx(data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        raise CorruptDocumentError("docx", str(e) or e.__class__.__name__, cause=e) from e
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(data))
    except Exception as e:
        raise CorruptDocumentError("pdf", str(e) or e.__class__.__name__, cause=e) from e


_READERS = {
    "pdf": read_pdf,
    "docx": read_docx,
    "txt": read_txt,
}


def extract_text(data: bytes, declared_format: str) -> str:
    """Decode one document into plain text.

    Raises UnsupportedFormatError for formats outside SUPPORTED_FORMATS and
    CorruptDocumentError when the decoder rejects the bytes.
    """
    fmt = normalize_format(declared_format)
    reader = _READERS.get(fmt)
    if reader is None:
        raise UnsupportedFormatError(fmt)
    return reader(data)


def is_archive(filename: str) -> bool:
    return format_from_filename(filename) in ARCHIVE_FORMATS


def expand_archive(data: bytes) -> List[Tuple[str, bytes]]:
    """Return the supported documents held directly in a ZIP archive.

    Directory entries and entries of any other type are dropped. Archives
    nested inside the archive are dropped too: expansion is one level deep.
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
        raise CorruptArchiveError(str(e), cause=e) from e

    out = []
    with zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            if format_from_filename(info.filename) not in SUPPORTED_FORMATS:
                continue
            try:
                out.append((info.filename, zf.read(info)))
            except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError) as e:
                raise CorruptArchiveError(f"{info.filename}: {e}", cause=e) from e
    return out
