from fastapi import APIRouter, Depends
from typing import List, Optional

from simulados.core.auth import TokenData, get_current_user
from simulados.models.schemas import UserSubjectStats
from simulados.storage.base import Storage
from simulados.storage.factory import get_storage

router = APIRouter()


@router.get("", response_model=List[UserSubjectStats])
async def get_stats(subject: Optional[str] = None, user: TokenData = Depends(get_current_user),
                    storage: Storage = Depends(get_storage)):
    """Per-subject rollups of the caller, optionally for a single subject."""
    return await storage.list_user_subject_stats(user.sub, subject)
