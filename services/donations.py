import logging
import re
from datetime import date
from typing import List, Optional, Union

from sqlmodel import Session

from errors import AuthenticationRequired, NotFoundError, PermissionDenied, ValidationError
from models import FOOD_TYPES, Donation, utcnow
from repository import DonationRepository, parse_quantity, validate_status
from schemas import DonationCreate, DonationStatistics
from security import Principal
from services.linkage import UserLinkageUpdater

PHONE_PATTERN = re.compile(r"^[0-9]{10}$")
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def _clean(value: Union[str, int, None]) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    return str(value).strip()


def validate_submission(data: DonationCreate) -> List[str]:
    """Collect every problem with a donation form instead of stopping at the first."""
    errors = []

    phone = _clean(data.phone)
    if not phone:
        errors.append("Phone number is required")
    elif not PHONE_PATTERN.match(phone):
        errors.append("Phone number must be 10 digits")

    email = _clean(data.email)
    if not email:
        errors.append("Email is required")
    elif not EMAIL_PATTERN.fullmatch(email):
        errors.append("Email format is invalid")

    if not _clean(data.full_name):
        errors.append("Full name is required")

    food_type = _clean(data.food_type)
    if not food_type:
        errors.append("Food type is required")
    elif food_type not in FOOD_TYPES:
        errors.append("Food type must be one of: " + ", ".join(FOOD_TYPES))

    if not _clean(data.full_address):
        errors.append("Address is required")

    try:
        parse_quantity(data.food_quantity)
    except ValidationError as exc:
        errors.extend(exc.errors)

    return errors


def check_status_transition(current: str, target: Optional[str]) -> str:
    """
    Decide whether a donation may move from `current` to `target`.
    Admins may currently move a donation between any two statuses,
    including back out of completed or cancelled.
    """
    return validate_status(target)


class DonationService:
    """Who may do what to a donation, on top of the repository."""

    def __init__(
        self,
        session: Session,
        logger: Optional[logging.Logger] = None,
        linkage: Optional[UserLinkageUpdater] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.donations = DonationRepository(session, self.logger)
        self.linkage = linkage or UserLinkageUpdater(session, self.logger)

    def submit(self, data: DonationCreate, principal: Principal) -> Donation:
        errors = validate_submission(data)
        if errors:
            self.logger.info("Rejected donation: %s", ", ".join(errors))
            raise ValidationError.from_errors(errors)

        owner_id = principal.id if principal.is_user else None
        donation = Donation(
            user_id=owner_id,
            full_name=_clean(data.full_name),
            email=_clean(data.email).lower(),
            phone=_clean(data.phone),
            food_type=_clean(data.food_type),
            full_address=_clean(data.full_address),
            food_quantity=str(parse_quantity(data.food_quantity)),
            notes=_clean(data.notes),
            status="pending",
            donation_date=utcnow(),
        )
        donation = self.donations.create(donation)
        self.logger.info(
            "Donation %s recorded for %s", donation.id, owner_id or "anonymous donor"
        )

        if owner_id is not None:
            self.linkage.record_donation(donation)

        return donation

    def change_status(self, donation_id: str, status: Optional[str], principal: Principal) -> Donation:
        if principal.is_anonymous:
            raise AuthenticationRequired("Authentication required to update donation status")
        if not principal.is_admin:
            raise PermissionDenied("You don't have permission to update donation status")

        donation = self.donations.find_by_id(donation_id)
        check_status_transition(donation.status, status)
        previous = donation.status
        donation = self.donations.update_status(donation_id, status)
        self.logger.info(
            "Donation %s moved from %s to %s by admin %s",
            donation.id,
            previous,
            donation.status,
            principal.id,
        )
        return donation

    def change_quantity(self, donation_id: str, quantity: Union[str, int, None], principal: Principal) -> Donation:
        if principal.is_anonymous:
            raise AuthenticationRequired("Authentication required to update donation")
        if not principal.is_user:
            raise PermissionDenied("Only the donor can update the donation quantity")

        parse_quantity(quantity)
        donation = self.donations.find_by_id(donation_id)

        if donation.user_id is None or donation.user_id != principal.id:
            raise PermissionDenied("You don't have permission to update this donation")

        if donation.status != "pending":
            raise ValidationError("Only pending donations can be updated")

        return self.donations.update_quantity(donation_id, quantity)

    def set_notes(self, donation_id: str, notes: Optional[str], principal: Principal) -> Donation:
        if principal.is_anonymous:
            raise AuthenticationRequired("Authentication required to add notes")
        if not principal.is_admin:
            raise PermissionDenied("You don't have permission to add notes to this donation")
        return self.donations.update_notes(donation_id, notes)

    def _is_visible_to(self, donation: Donation, principal: Principal) -> bool:
        if principal.is_admin:
            return True
        if not principal.is_user:
            return False
        return donation.user_id == principal.id or (
            principal.email is not None and donation.email == principal.email.lower()
        )

    def get(self, donation_id: str, principal: Principal) -> Donation:
        if principal.is_anonymous:
            raise AuthenticationRequired("Authentication required to view donations")
        donation = self.donations.find_by_id(donation_id)
        if not self._is_visible_to(donation, principal):
            # Same answer as a missing record, so ids cannot be probed.
            raise NotFoundError("Donation not found")
        return donation

    def list_mine(self, principal: Principal) -> List[Donation]:
        if not principal.is_user:
            return []
        return self.donations.find_by_filter(owner_id=principal.id, owner_email=principal.email)

    def search(
        self,
        principal: Principal,
        status: Optional[str] = None,
        food_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Donation]:
        if principal.is_anonymous:
            raise AuthenticationRequired("Authentication required to view donations")

        owner_id = owner_email = None
        if not principal.is_admin:
            owner_id, owner_email = principal.id, principal.email

        return self.donations.find_by_filter(
            status=status,
            food_type=food_type,
            start_date=start_date,
            end_date=end_date,
            owner_id=owner_id,
            owner_email=owner_email,
        )

    def statistics(self, principal: Principal) -> DonationStatistics:
        if principal.is_anonymous:
            raise AuthenticationRequired("Authentication required to view statistics")
        if not principal.is_admin:
            raise PermissionDenied("You don't have permission to view donation statistics")
        return self.donations.aggregate_statistics()
