from fastapi import APIRouter, Depends, File, UploadFile

from assembler.auth import get_current_user_id
from assembler.config import settings
from assembler.errors import ValidationError
from assembler.services.exhibits import check_exhibit_file, store_exhibit_file

router = APIRouter()


@router.post("/upload", status_code=201)
async def upload_exhibit(
    file: UploadFile = File(...),
    owner_id: str = Depends(get_current_user_id),
):
    if not file.filename:
        raise ValidationError("file is required")

    # refuse on the declared type before reading the body
    check_exhibit_file(file.content_type or "", 0)
    content = await file.read(settings.exhibit_max_bytes + 1)

    file_ref, page_count = store_exhibit_file(owner_id, file.filename, file.content_type or "", content)
    return {
        "fileRef": file_ref,
        "fileName": file.filename,
        "sizeBytes": len(content),
        "pageCount": page_count,
    }
