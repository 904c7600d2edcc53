import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models import Donation, User, utcnow
from repository import DonationRepository


class UserLinkageUpdater:
    """
    Keeps the donation counter and back-references on a user in step with
    new donations. The counter is a cached projection of the owner query,
    so a failed update is logged and never fails the donation itself.
    """

    def __init__(self, session: Session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    def record_donation(self, donation: Donation) -> bool:
        user_id, donation_id = donation.user_id, donation.id
        if user_id is None:
            return False

        try:
            # The counter is bumped in SQL first so the row stays locked for
            # the rest of this transaction; concurrent links queue behind it.
            result = self.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(total_donations=User.total_donations + 1)
            )
            if result.rowcount == 0:
                self.session.rollback()
                self.logger.warning(
                    "User %s not found when linking donation %s",
                    user_id,
                    donation_id,
                )
                return False

            user = self.session.exec(
                select(User)
                .where(User.id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).one()
            # Reassign so the JSON column is flagged dirty.
            user.donation_ids = [*(user.donation_ids or []), donation_id]
            user.updated_at = utcnow()
            total = user.total_donations
            self.session.add(user)
            self.session.commit()
            self.logger.info(
                "User %s linked to donation %s, total donations: %d",
                user_id,
                donation_id,
                total,
            )
        except SQLAlchemyError:
            self.session.rollback()
            self.logger.exception(
                "Error linking donation %s to user %s", donation_id, user_id
            )
            return False

        return True

    def reconcile(self, user: User) -> User:
        """Recompute the counter and back-references from the donations table."""
        donations = DonationRepository(self.session, self.logger).find_by_filter(
            owner_id=user.id, owner_email=user.email
        )
        # Oldest first, matching the order links are appended in.
        donation_ids = [donation.id for donation in reversed(donations)]
        if user.total_donations != len(donation_ids) or user.donation_ids != donation_ids:
            self.logger.info(
                "Reconciled user %s: %d -> %d donations",
                user.id,
                user.total_donations,
                len(donation_ids),
            )
        user.total_donations = len(donation_ids)
        user.donation_ids = donation_ids
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user
