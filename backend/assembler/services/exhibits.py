import logging
import os
import tempfile
import uuid

import pdfplumber

from assembler.config import settings
from assembler.errors import FieldError, ValidationError
from assembler.models.filing import MAX_EXHIBITS, ExhibitCollection, ExhibitEntry

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
NOT_PDF = "Only PDF files are accepted for exhibits"


def too_large_message() -> str:
    return f"Exhibits must be under {settings.exhibit_max_bytes // (1024 * 1024)}MB"


class ExhibitFileRejected(ValidationError):
    def __init__(self, reason: str):
        super().__init__(reason, [FieldError(field="file", message=reason)])
        self.reason = reason


def exhibit_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA, ..."""
    label = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        label = chr(ord("A") + rem) + label
    return label


def check_exhibit_file(content_type: str, size: int):
    if (content_type or "").split(";")[0].strip().lower() != PDF_CONTENT_TYPE:
        raise ExhibitFileRejected(NOT_PDF)
    if size > settings.exhibit_max_bytes:
        raise ExhibitFileRejected(too_large_message())


# --- collection operations; each returns a new collection ---

def add_exhibit(collection: ExhibitCollection, description: str = "") -> ExhibitCollection:
    if len(collection.exhibits) >= MAX_EXHIBITS:
        raise ValidationError(f"at most {MAX_EXHIBITS} exhibits are allowed")
    entry = ExhibitEntry(
        id=uuid.uuid4().hex[:12],
        label=exhibit_label(collection.sequence),
        description=description,
    )
    return ExhibitCollection(
        exhibits=collection.exhibits + (entry,),
        sequence=collection.sequence + 1,
        version=collection.version + 1,
    )


def remove_exhibit(collection: ExhibitCollection, exhibit_id: str) -> ExhibitCollection:
    _require(collection, exhibit_id)
    return collection.model_copy(update={
        "exhibits": tuple(e for e in collection.exhibits if e.id != exhibit_id),
        "version": collection.version + 1,
    })


def update_exhibit(collection: ExhibitCollection, exhibit_id: str, description: str) -> ExhibitCollection:
    return _replace(collection, _require(collection, exhibit_id).model_copy(update={"description": description}))


def attach_file(
    collection: ExhibitCollection,
    exhibit_id: str,
    file_name: str,
    content_type: str,
    size: int,
    file_ref: str = "",
) -> ExhibitCollection:
    """raises ExhibitFileRejected before touching the collection"""
    entry = _require(collection, exhibit_id)
    check_exhibit_file(content_type, size)
    return _replace(collection, entry.model_copy(update={
        "file_name": file_name,
        "file_ref": file_ref,
        "content_type": content_type,
        "size_bytes": size,
    }))


def _require(collection: ExhibitCollection, exhibit_id: str) -> ExhibitEntry:
    entry = collection.get(exhibit_id)
    if entry is None:
        raise ValidationError(f"exhibit {exhibit_id} not found")
    return entry


def _replace(collection: ExhibitCollection, entry: ExhibitEntry) -> ExhibitCollection:
    return collection.model_copy(update={
        "exhibits": tuple(entry if e.id == entry.id else e for e in collection.exhibits),
        "version": collection.version + 1,
    })


# --- uploaded files ---

def store_exhibit_file(owner_id: str, filename: str, content_type: str, content: bytes) -> tuple[str, int]:
    """persist an accepted exhibit PDF under the owner's upload dir.
    returns (file_ref, page_count)."""
    check_exhibit_file(content_type, len(content))
    if not content:
        raise ExhibitFileRejected("empty file")
    _check_owner_id(owner_id)

    owner_dir = os.path.join(settings.upload_dir, owner_id)
    os.makedirs(owner_dir, exist_ok=True)
    file_ref = os.path.join(owner_id, f"{uuid.uuid4().hex[:12]}_{os.path.basename(filename)}")
    with open(os.path.join(settings.upload_dir, file_ref), "wb") as f:
        f.write(content)

    page_count = _count_pages(content)
    logger.info("stored exhibit %s (%d bytes, %d pages)", file_ref, len(content), page_count)
    return file_ref, page_count


def _count_pages(content: bytes) -> int:
    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp:
        tmp.write(content)
        tmp_path = tmp.name

    try:
        with pdfplumber.open(tmp_path) as pdf:
            return len(pdf.pages)
    except Exception as exc:
        # the formatter rejects unreadable PDFs; page count is informational here
        logger.warning("could not read pages of uploaded exhibit: %s", exc)
        return 0
    finally:
        os.unlink(tmp_path)


def _check_owner_id(owner_id: str):
    # owner ids name a directory under upload_dir and must stay inside it
    if (
        not owner_id
        or owner_id in (".", "..")
        or any(sep in owner_id for sep in ("/", "\\", "\x00"))
    ):
        raise ValidationError(
            "Invalid owner id for exhibit storage",
            [FieldError(field="ownerId", message="must be a single path segment")],
        )
