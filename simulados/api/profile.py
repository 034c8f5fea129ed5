from fastapi import APIRouter, Depends

from simulados.core.auth import TokenData, get_current_user
from simulados.core.errors import NotFoundError
from simulados.models.schemas import UserProfile, UserProfileIn
from simulados.storage.base import Storage
from simulados.storage.factory import get_storage

router = APIRouter()


@router.get("/profile", response_model=UserProfile)
async def get_profile(user: TokenData = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    profile = await storage.get_user_profile(user.sub)
    if profile is None:
        raise NotFoundError("User profile not found", user_id=user.sub)
    return profile


@router.post("/profile", response_model=UserProfile)
async def save_profile(payload: UserProfileIn, user: TokenData = Depends(get_current_user),
                       storage: Storage = Depends(get_storage)):
    """Create the onboarding profile or replace the existing one."""
    return await storage.save_user_profile(user.sub, payload)


@router.patch("/profile/complete-onboarding", response_model=UserProfile)
async def complete_onboarding(user: TokenData = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    profile = await storage.update_user_profile(user.sub, {"onboarding_completed": True})
    if profile is None:
        raise NotFoundError("User profile not found", user_id=user.sub)
    return profile
