# backend/routes/uploads.py

import asyncio

from fastapi import APIRouter, Depends, UploadFile, File

from config.constants import MAX_IMAGE_BYTES
from config.env import UPLOAD_FOLDER
from utils.cloudinary import upload_image, validate_image
from utils.security import require_role

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])


# =========================
# UPLOAD LISTING IMAGE
# =========================
@router.post("/listing-image")
async def upload_listing_image(
    file: UploadFile = File(...),
    farmer=Depends(require_role("farmer")),
):
    # never buffer more than limit + 1 bytes
    data = await file.read(MAX_IMAGE_BYTES + 1)
    validate_image(data, file.content_type)

    image_url = await asyncio.to_thread(
        upload_image,
        data,
        file.content_type,
        f"{UPLOAD_FOLDER}/listings/{farmer['id']}",
    )

    # the client sends this URL with the listing create/update call
    return {
        "message": "Listing image uploaded",
        "image_url": image_url,
    }
