import logging

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from config.env import (
    CLOUDINARY_CLOUD_NAME,
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
)
from config.constants import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES
from utils.errors import TransientError, ValidationError

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=CLOUDINARY_CLOUD_NAME,
    api_key=CLOUDINARY_API_KEY,
    api_secret=CLOUDINARY_API_SECRET,
    secure=True,
)


class ImageTooLarge(ValidationError):
    status_code = 413
    code = "IMAGE_TOO_LARGE"


def validate_image(data: bytes, content_type: str | None) -> None:
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Please upload a JPG or PNG image")

    if len(data) > MAX_IMAGE_BYTES:
        raise ImageTooLarge("Image must be less than 5MB", max_bytes=MAX_IMAGE_BYTES)


def upload_image(data: bytes, content_type: str | None, folder: str) -> str:
    """
    Upload an image and return its public URL.
    """
    validate_image(data, content_type)

    try:
        result = cloudinary.uploader.upload(
            data,
            folder=folder,
            resource_type="image",
        )
    except CloudinaryError as e:
        logger.warning("IMAGE_UPLOAD_FAILED folder=%s error=%s", folder, e)
        raise TransientError("Image upload failed")

    url = result.get("secure_url")
    if not url:
        raise TransientError("Image upload failed")
    return url
