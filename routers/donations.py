from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from db import SessionDep
from models import Donation
from schemas import (
    ApiResponse,
    DonationCreate,
    DonationNotesUpdate,
    DonationQuantityUpdate,
    DonationRead,
    DonationStatusUpdate,
)
from services.donations import DonationService
from .auth import OptionalPrincipalDep

router = APIRouter(tags=["donations"])


def get_donation_service(session: SessionDep) -> DonationService:
    return DonationService(session)


DonationServiceDep = Annotated[DonationService, Depends(get_donation_service)]


def _read_all(donations: List[Donation]) -> List[DonationRead]:
    return [DonationRead.model_validate(donation) for donation in donations]


@router.post("/", response_model=ApiResponse, status_code=201)
def donate_food(
    donation_in: DonationCreate,
    service: DonationServiceDep,
    principal: OptionalPrincipalDep,
):
    """
    Record a donation. Anyone may donate; a logged-in donor becomes its owner.
    """
    donation = service.submit(donation_in, principal)
    return ApiResponse(
        status_code=201,
        message="Donation recorded successfully",
        data=DonationRead.model_validate(donation),
    )


@router.get("/mine", response_model=ApiResponse)
def my_donations(service: DonationServiceDep, principal: OptionalPrincipalDep):
    """
    Donations linked to the caller, or made with the caller's email.
    Anonymous callers just get an empty list.
    """
    donations = service.list_mine(principal)
    return ApiResponse(
        status_code=200,
        message="User donations retrieved successfully",
        data=_read_all(donations),
    )


@router.get("/statistics", response_model=ApiResponse)
def donation_statistics(service: DonationServiceDep, principal: OptionalPrincipalDep):
    statistics = service.statistics(principal)
    return ApiResponse(
        status_code=200,
        message="Donation statistics retrieved successfully",
        data=statistics,
    )


@router.get("/date-range", response_model=ApiResponse)
def donations_by_date_range(
    service: DonationServiceDep,
    principal: OptionalPrincipalDep,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    if start_date is None or end_date is None:
        raise HTTPException(status_code=400, detail="Both start date and end date are required")
    donations = service.search(principal, start_date=start_date, end_date=end_date)
    return ApiResponse(
        status_code=200,
        message="Donations in date range retrieved successfully",
        data=_read_all(donations),
    )


@router.get("/status/{status}", response_model=ApiResponse)
def donations_by_status(status: str, service: DonationServiceDep, principal: OptionalPrincipalDep):
    donations = service.search(principal, status=status)
    return ApiResponse(
        status_code=200,
        message=f"Donations with status '{status}' retrieved successfully",
        data=_read_all(donations),
    )


@router.get("/food-type/{food_type}", response_model=ApiResponse)
def donations_by_food_type(food_type: str, service: DonationServiceDep, principal: OptionalPrincipalDep):
    donations = service.search(principal, food_type=food_type)
    return ApiResponse(
        status_code=200,
        message=f"Donations with food type '{food_type}' retrieved successfully",
        data=_read_all(donations),
    )


@router.get("/", response_model=ApiResponse)
def list_donations(
    service: DonationServiceDep,
    principal: OptionalPrincipalDep,
    status: Optional[str] = None,
    food_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """
    List donations, optionally filtered by status, food type and date range.
    Admins see every donation, donors only their own.
    """
    donations = service.search(
        principal,
        status=status,
        food_type=food_type,
        start_date=start_date,
        end_date=end_date,
    )
    return ApiResponse(
        status_code=200,
        message="Donations retrieved successfully",
        data=_read_all(donations),
    )


@router.get("/{donation_id}", response_model=ApiResponse)
def get_donation(donation_id: str, service: DonationServiceDep, principal: OptionalPrincipalDep):
    donation = service.get(donation_id, principal)
    return ApiResponse(
        status_code=200,
        message="Donation retrieved successfully",
        data=DonationRead.model_validate(donation),
    )


@router.patch("/{donation_id}/status", response_model=ApiResponse)
def update_donation_status(
    donation_id: str,
    update: DonationStatusUpdate,
    service: DonationServiceDep,
    principal: OptionalPrincipalDep,
):
    donation = service.change_status(donation_id, update.status, principal)
    return ApiResponse(
        status_code=200,
        message="Donation status updated successfully",
        data=DonationRead.model_validate(donation),
    )


@router.patch("/{donation_id}/quantity", response_model=ApiResponse)
def update_donation_quantity(
    donation_id: str,
    update: DonationQuantityUpdate,
    service: DonationServiceDep,
    principal: OptionalPrincipalDep,
):
    """
    Donors may change the quantity of their own donation while it is pending.
    """
    donation = service.change_quantity(donation_id, update.food_quantity, principal)
    return ApiResponse(
        status_code=200,
        message="Donation quantity updated successfully",
        data=DonationRead.model_validate(donation),
    )


@router.put("/{donation_id}/notes", response_model=ApiResponse)
def add_notes(
    donation_id: str,
    update: DonationNotesUpdate,
    service: DonationServiceDep,
    principal: OptionalPrincipalDep,
):
    donation = service.set_notes(donation_id, update.notes, principal)
    return ApiResponse(
        status_code=200,
        message="Notes added to donation successfully",
        data=DonationRead.model_validate(donation),
    )
