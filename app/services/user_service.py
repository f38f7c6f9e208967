import logging
import uuid

from fastapi import UploadFile
from google.api_core.exceptions import GoogleAPICallError
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas
from app.core.config import settings
from app.core.errors import InvalidOperation, StorageUnavailable
from app.utils.storage import gcs_storage, StorageNotConfigured

logger = logging.getLogger(__name__)

ALLOWED_PICTURE_TYPES = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


async def update_profile(
    db: AsyncSession, *, user: models.User, profile_in: schemas.ProfileUpdate
) -> models.User:
    return await crud.crud_user.update_profile(db, db_obj=user, obj_in=profile_in)


async def upload_profile_picture(db: AsyncSession, *, user: models.User, file: UploadFile) -> models.User:
    content_type = (file.content_type or "").lower()
    extension = ALLOWED_PICTURE_TYPES.get(content_type)
    if extension is None:
        raise InvalidOperation("Profile picture must be a JPEG, PNG or WebP image.")

    data = await file.read(settings.PROFILE_PICTURE_MAX_BYTES + 1)
    if not data:
        raise InvalidOperation("Uploaded file is empty.")
    if len(data) > settings.PROFILE_PICTURE_MAX_BYTES:
        raise InvalidOperation(
            f"Profile picture exceeds {settings.PROFILE_PICTURE_MAX_BYTES // (1024 * 1024)} MB."
        )

    blob_name = f"profile_pictures/{user.id}/{uuid.uuid4()}.{extension}"
    try:
        url = await gcs_storage.upload_bytes_async(data, blob_name, content_type)
    except (StorageNotConfigured, GoogleAPICallError) as e:
        logger.error(f"Profile picture upload for user {user.id} failed: {e}")
        raise StorageUnavailable("Image storage is unavailable, try again later.") from e

    previous = user.profile_picture_public_id
    user = await crud.crud_user.set_profile_picture(db, db_obj=user, url=url, public_id=blob_name)

    if previous and previous != blob_name:
        try:
            await gcs_storage.delete_blob_async(previous)
        except (StorageNotConfigured, GoogleAPICallError) as e:
            # The new picture is already live; an orphaned object is harmless
            logger.warning(f"Could not delete previous picture {previous}: {e}")
    return user
