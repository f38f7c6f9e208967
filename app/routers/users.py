from fastapi import APIRouter, Depends, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app import models, schemas, services
from app.db.session import get_db
from app.security import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=schemas.ProfileResponse)
async def read_own_profile(current_user: models.User = Depends(get_current_user)):
    """
    Get the current user's full profile.
    """
    return {"success": True, "user": current_user}


@router.put("", response_model=schemas.ProfileResponse)
async def update_own_profile(
    profile_in: schemas.ProfileUpdate,
    current_user: models.User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the profile for the currently authenticated user.
    Only fields present in the request body are written.
    """
    user = await services.user_service.update_profile(db, user=current_user, profile_in=profile_in)
    return {"success": True, "user": user}


@router.post("/picture", response_model=schemas.ProfileResponse)
async def upload_own_picture(
    file: UploadFile = File(...),
    current_user: models.User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await services.user_service.upload_profile_picture(db, user=current_user, file=file)
    return {"success": True, "user": user}
