# routers/users.py
from fastapi import APIRouter

from db import SessionDep
from schemas import ApiResponse, UserRead, UserUpdate
from services.accounts import AccountService
from .auth import CurrentUserDep

router = APIRouter(tags=["users"])


@router.get("/profile", response_model=ApiResponse)
def get_profile(current: CurrentUserDep):
    """
    Get the logged-in donor's profile, including the cached donation counter.
    """
    return ApiResponse(
        status_code=200,
        message="User profile retrieved successfully",
        data=UserRead.model_validate(current),
    )


@router.put("/me", response_model=ApiResponse)
def update_own_account(changes: UserUpdate, session: SessionDep, current: CurrentUserDep):
    user = AccountService(session).update_user(current, changes)
    return ApiResponse(
        status_code=200,
        message="User updated successfully",
        data=UserRead.model_validate(user),
    )


@router.delete("/me", response_model=ApiResponse)
def delete_own_account(session: SessionDep, current: CurrentUserDep):
    """
    Delete the logged-in account. Donations made from it are kept,
    still matched to the donor by email.
    """
    AccountService(session).delete_user(current)
    return ApiResponse(status_code=200, message="User deleted successfully")
