import logging
import re
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Type, Union

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from errors import ConflictError, NotFoundError, ValidationError
from models import (
    DONATION_STATUSES,
    FOOD_TYPES,
    Admin,
    Donation,
    User,
    as_utc,
    new_id,
    new_unique_id,
    utcnow,
)
from schemas import DailyCount, DonationStatistics

ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
QUANTITY_PATTERN = re.compile(r"[+-]?[0-9]+")

# A collision on the generated tokens is retried at most this many times.
MAX_CREATE_RETRIES = 2

STATISTICS_WINDOW_DAYS = 7


def is_valid_id(value: Optional[str]) -> bool:
    return isinstance(value, str) and ID_PATTERN.match(value) is not None


def parse_quantity(value: Union[str, int, None]) -> int:
    """Parse a food quantity, raising ValidationError unless it is a positive integer."""
    if value is None or str(value).strip() == "":
        raise ValidationError("Food quantity is required", ["Food quantity is required"])
    text = str(value).strip()
    if not QUANTITY_PATTERN.fullmatch(text):
        raise ValidationError(
            "Food quantity must be a whole number",
            ["Food quantity must be a whole number"],
        )
    quantity = int(text)
    if quantity <= 0:
        raise ValidationError(
            "Food quantity must be greater than 0",
            ["Food quantity must be greater than 0"],
        )
    return quantity


def validate_status(status: Optional[str]) -> str:
    if status not in DONATION_STATUSES:
        raise ValidationError(
            "Invalid status. Must be one of: " + ", ".join(DONATION_STATUSES)
        )
    return status


def validate_food_type(food_type: Optional[str]) -> str:
    if food_type not in FOOD_TYPES:
        raise ValidationError(
            "Invalid food type. Must be one of: " + ", ".join(FOOD_TYPES)
        )
    return food_type


class DonationRepository:
    """Persisted donation records."""

    def __init__(self, session: Session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    def create(self, donation: Donation) -> Donation:
        retries = 0
        while True:
            self.session.add(donation)
            try:
                self.session.commit()
                break
            except IntegrityError as exc:
                self.session.rollback()
                if retries >= MAX_CREATE_RETRIES:
                    self.logger.error(
                        "Giving up on donation for %s after %d retries",
                        donation.email,
                        retries,
                    )
                    raise ConflictError("Could not record donation, please try again") from exc
                retries += 1
                self.logger.warning(
                    "Duplicate key creating donation, retrying (%d/%d)",
                    retries,
                    MAX_CREATE_RETRIES,
                )
                donation.id = new_id()
                donation.unique_id = new_unique_id()
                donation.donation_date = utcnow()

        self.session.refresh(donation)
        return donation

    def find_by_id(self, donation_id: str) -> Donation:
        if not is_valid_id(donation_id):
            raise ValidationError("Invalid donation ID format")
        donation = self.session.get(Donation, donation_id)
        if donation is None:
            raise NotFoundError("Donation not found")
        return donation

    def find_by_filter(
        self,
        status: Optional[str] = None,
        food_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        owner_id: Optional[str] = None,
        owner_email: Optional[str] = None,
    ) -> List[Donation]:
        """
        List donations newest first.
        The owner filter matches on the owning user id OR the donor email,
        so donations made before signing in still show up for their donor.
        """
        query = select(Donation)

        if status is not None:
            query = query.where(Donation.status == validate_status(status))

        if food_type is not None:
            query = query.where(Donation.food_type == validate_food_type(food_type))

        if start_date is not None or end_date is not None:
            start = datetime.combine(start_date or date.min, time.min, tzinfo=timezone.utc)
            end = datetime.combine(end_date or date.max, time.max, tzinfo=timezone.utc)
            if start > end:
                raise ValidationError("Start date must not be after end date")
            query = query.where(
                or_(
                    and_(Donation.donation_date >= start, Donation.donation_date <= end),
                    and_(Donation.created_at >= start, Donation.created_at <= end),
                )
            )

        owner_clauses = []
        if owner_id is not None:
            owner_clauses.append(Donation.user_id == owner_id)
        if owner_email:
            owner_clauses.append(Donation.email == owner_email.strip().lower())
        if owner_clauses:
            query = query.where(or_(*owner_clauses))

        query = query.order_by(Donation.created_at.desc())
        return list(self.session.exec(query).all())

    def _save(self, donation: Donation) -> Donation:
        donation.updated_at = utcnow()
        self.session.add(donation)
        self.session.commit()
        self.session.refresh(donation)
        return donation

    def update_status(self, donation_id: str, status: Optional[str]) -> Donation:
        validate_status(status)
        donation = self.find_by_id(donation_id)
        donation.status = status
        return self._save(donation)

    def update_notes(self, donation_id: str, notes: Optional[str]) -> Donation:
        if not isinstance(notes, str) or not notes.strip():
            raise ValidationError("Notes cannot be empty")
        donation = self.find_by_id(donation_id)
        donation.notes = notes.strip()
        return self._save(donation)

    def update_quantity(self, donation_id: str, quantity: Union[str, int, None]) -> Donation:
        value = parse_quantity(quantity)
        donation = self.find_by_id(donation_id)
        donation.food_quantity = str(value)
        return self._save(donation)

    def detach_owner(self, user_id: str) -> int:
        """Clear the owner reference on a user's donations; the records stay."""
        donations = self.session.exec(
            select(Donation).where(Donation.user_id == user_id)
        ).all()
        for donation in donations:
            donation.user_id = None
            donation.updated_at = utcnow()
            self.session.add(donation)
        self.session.flush()
        return len(donations)

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(Donation)).one()

    def count_by_status(self) -> dict:
        rows = self.session.exec(
            select(Donation.status, func.count()).group_by(Donation.status)
        ).all()
        counts = {status: 0 for status in DONATION_STATUSES}
        counts.update({status: count for status, count in rows if status})
        return counts

    def count_by_food_type(self) -> dict:
        rows = self.session.exec(
            select(Donation.food_type, func.count()).group_by(Donation.food_type)
        ).all()
        return {food_type: count for food_type, count in rows if food_type}

    def total_food_quantity(self) -> int:
        total = 0
        for quantity in self.session.exec(select(Donation.food_quantity)).all():
            try:
                total += int(quantity)
            except (TypeError, ValueError):
                continue
        return total

    def recent(self, limit: int = 5) -> List[Donation]:
        query = select(Donation).order_by(Donation.created_at.desc()).limit(limit)
        return list(self.session.exec(query).all())

    def aggregate_statistics(self, today: Optional[date] = None) -> DonationStatistics:
        """
        Totals for the admin dashboard.
        A database failure degrades to empty statistics instead of an error.
        """
        today = today or utcnow().date()
        first_day = today - timedelta(days=STATISTICS_WINDOW_DAYS - 1)
        try:
            created = self.session.exec(
                select(Donation.created_at).where(
                    Donation.created_at >= datetime.combine(first_day, time.min, tzinfo=timezone.utc)
                )
            ).all()
            per_day = Counter(as_utc(moment).date() for moment in created)
            return DonationStatistics(
                total_donations=self.count(),
                by_status=self.count_by_status(),
                by_food_type=self.count_by_food_type(),
                recent_donations=[
                    DailyCount(date=day.isoformat(), count=per_day.get(day, 0))
                    for day in (
                        first_day + timedelta(days=offset)
                        for offset in range(STATISTICS_WINDOW_DAYS)
                    )
                ],
            )
        except SQLAlchemyError:
            self.logger.exception("Error generating donation statistics")
            self.session.rollback()
            return DonationStatistics()


class AccountRepository:
    """Lookup and persistence shared by users and admins."""

    model: Type[SQLModel] = None  # type: ignore[assignment]
    label = "Account"

    def __init__(self, session: Session):
        self.session = session

    def get(self, account_id: str):
        if not is_valid_id(account_id):
            raise ValidationError(f"Invalid {self.label.lower()} ID")
        account = self.session.get(self.model, account_id)
        if account is None:
            raise NotFoundError(f"{self.label} not found")
        return account

    def get_by_email(self, email: str):
        return self.session.exec(
            select(self.model).where(self.model.email == email.strip().lower())
        ).first()

    def get_by_phone(self, phone: str):
        return self.session.exec(
            select(self.model).where(self.model.phone == phone)
        ).first()

    def save(self, account):
        account.updated_at = utcnow()
        self.session.add(account)
        try:
            self.session.commit()
        except IntegrityError as exc:
            # Lost a race with another registration past the lookup in the service.
            self.session.rollback()
            raise ConflictError(f"{self.label} with this email or phone already exists") from exc
        self.session.refresh(account)
        return account

    def list_all(self) -> list:
        return list(
            self.session.exec(
                select(self.model).order_by(self.model.created_at.desc())
            ).all()
        )

    def recent(self, limit: int = 5) -> list:
        return list(
            self.session.exec(
                select(self.model).order_by(self.model.created_at.desc()).limit(limit)
            ).all()
        )

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(self.model)).one()


class UserRepository(AccountRepository):
    model = User
    label = "User"

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.commit()


class AdminRepository(AccountRepository):
    model = Admin
    label = "Admin"
