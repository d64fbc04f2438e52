# ============================================================================
# Account Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from typing import Dict, Optional
from uuid import UUID

from learnquest.api.deps import get_account_service
from learnquest.core.security import get_current_user_id
from learnquest.services.accounts import AccountDataService

router = APIRouter(prefix="/account", tags=["account"])

@router.delete("", response_model=Dict[str, int])
async def delete_my_account(
    user_id: Optional[UUID] = Depends(get_current_user_id),
    service: AccountDataService = Depends(get_account_service)
):
    """Remove the account and all progress data it owns"""
    return (await service.delete_account_data(user_id)).unwrap()
