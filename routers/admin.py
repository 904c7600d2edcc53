from typing import Optional

from fastapi import APIRouter, HTTPException, Response

from db import SessionDep
from repository import DonationRepository, UserRepository
from schemas import (
    AdminCreate,
    AdminRead,
    ApiResponse,
    DashboardStats,
    DonationRead,
    DonationsWithCounts,
    LoginData,
    PasswordReset,
    StatusFilter,
    UserRead,
)
from security import ROLE_ADMIN, create_session_token
from services.accounts import AccountService
from services.linkage import UserLinkageUpdater
from .auth import CurrentAdminDep, OptionalPrincipalDep, set_session_cookie

router = APIRouter(tags=["admin"])


@router.post("/register", response_model=ApiResponse, status_code=201)
def register_admin(admin_in: AdminCreate, session: SessionDep, principal: OptionalPrincipalDep):
    """
    Open while no admin exists; after that only an admin can add another.
    """
    service = AccountService(session)
    if service.admins.count() > 0 and not principal.is_admin:
        raise HTTPException(status_code=403, detail="Only an admin can register another admin")
    admin = service.register_admin(admin_in)
    return ApiResponse(
        status_code=201,
        message="Admin registered successfully",
        data=AdminRead.model_validate(admin),
    )


@router.post("/login", response_model=ApiResponse)
def login_admin(payload: LoginData, session: SessionDep, response: Response):
    admin = AccountService(session).authenticate_admin(payload)
    token = create_session_token(admin.id, ROLE_ADMIN)
    set_session_cookie(response, token)
    return ApiResponse(
        status_code=200,
        message="Login successful",
        data={
            "access_token": token,
            "token_type": "bearer",
            "admin": AdminRead.model_validate(admin),
        },
    )


@router.get("/profile", response_model=ApiResponse)
def admin_profile(current: CurrentAdminDep):
    return ApiResponse(
        status_code=200,
        message="Admin profile retrieved successfully",
        data=AdminRead.model_validate(current),
    )


@router.get("/dashboard-stats", response_model=ApiResponse)
def dashboard_stats(session: SessionDep, current: CurrentAdminDep):
    """
    Headline numbers for the admin dashboard.
    """
    donations = DonationRepository(session)
    users = UserRepository(session)
    stats = DashboardStats(
        total_users=users.count(),
        total_donations=donations.count(),
        total_food_quantity=donations.total_food_quantity(),
        status_counts=donations.count_by_status(),
        recent_donations=[DonationRead.model_validate(d) for d in donations.recent(5)],
        recent_users=[UserRead.model_validate(u) for u in users.recent(5)],
    )
    return ApiResponse(
        status_code=200,
        message="Dashboard stats retrieved successfully",
        data=stats,
    )


@router.get("/users", response_model=ApiResponse)
def list_users(session: SessionDep, current: CurrentAdminDep):
    users = UserRepository(session).list_all()
    return ApiResponse(
        status_code=200,
        message="Users retrieved successfully",
        data=[UserRead.model_validate(user) for user in users],
    )


@router.get("/users/{user_id}", response_model=ApiResponse)
def get_user_details(user_id: str, session: SessionDep, current: CurrentAdminDep):
    """
    A user's profile together with every donation attributed to them.
    """
    user = UserRepository(session).get(user_id)
    donations = DonationRepository(session).find_by_filter(
        owner_id=user.id, owner_email=user.email
    )
    return ApiResponse(
        status_code=200,
        message="User details retrieved successfully",
        data={
            "user": UserRead.model_validate(user),
            "donations": [DonationRead.model_validate(d) for d in donations],
        },
    )


@router.post("/users/{user_id}/reconcile", response_model=ApiResponse)
def reconcile_user(user_id: str, session: SessionDep, current: CurrentAdminDep):
    """
    Rebuild a user's donation counter from the donations table.
    """
    user = UserRepository(session).get(user_id)
    user = UserLinkageUpdater(session).reconcile(user)
    return ApiResponse(
        status_code=200,
        message="User donation count reconciled",
        data=UserRead.model_validate(user),
    )


@router.get("/donations", response_model=ApiResponse)
def list_donations(
    session: SessionDep,
    current: CurrentAdminDep,
    status: Optional[StatusFilter] = None,
):
    """
    Every donation, optionally narrowed to one status ('all' means no filter),
    with per-status counts alongside.
    """
    repo = DonationRepository(session)
    donations = repo.find_by_filter(status=None if status in (None, "all") else status)
    counts = {"total": len(donations), **repo.count_by_status()}
    return ApiResponse(
        status_code=200,
        message="Donations retrieved successfully",
        data=DonationsWithCounts(
            donations=[DonationRead.model_validate(d) for d in donations],
            counts=counts,
        ),
    )


@router.post("/reset-password", response_model=ApiResponse)
def reset_password(payload: PasswordReset, session: SessionDep, current: CurrentAdminDep):
    AccountService(session).reset_admin_password(current, payload)
    return ApiResponse(status_code=200, message="Password updated successfully")
