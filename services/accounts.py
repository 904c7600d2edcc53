import logging
from typing import Optional

from sqlmodel import Session

from errors import AuthenticationRequired, ConflictError, ValidationError
from models import Admin, User
from repository import AdminRepository, DonationRepository, UserRepository
from schemas import AdminCreate, LoginData, PasswordReset, UserCreate, UserUpdate
from security import hash_password, verify_password


class AccountService:
    """Registration, login and profile changes for donors and admins."""

    def __init__(self, session: Session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self.users = UserRepository(session)
        self.admins = AdminRepository(session)

    def _ensure_unique(self, repo, email: str, phone: str, exclude_id: Optional[str] = None) -> None:
        existing = repo.get_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"{repo.label} already exists with this email")
        existing = repo.get_by_phone(phone)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"{repo.label} with this phone already exists")

    def register_user(self, user_in: UserCreate) -> User:
        email = user_in.email.lower()
        self._ensure_unique(self.users, email, user_in.phone)

        user = User(
            full_name=user_in.full_name.strip(),
            email=email,
            password_hash=hash_password(user_in.password),
            phone=user_in.phone,
            city=user_in.city.strip(),
            pincode=user_in.pincode.strip(),
            address=user_in.address.strip(),
        )
        user = self.users.save(user)
        self.logger.info("Registered user %s", user.id)
        return user

    def authenticate_user(self, payload: LoginData) -> User:
        user = self.users.get_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise AuthenticationRequired("Invalid email or password")
        return user

    def update_user(self, user: User, changes: UserUpdate) -> User:
        data = changes.model_dump(exclude_unset=True, exclude_none=True)
        if not data:
            raise ValidationError("Nothing to update")

        if "email" in data:
            data["email"] = data["email"].lower()
        self._ensure_unique(
            self.users,
            data.get("email", user.email),
            data.get("phone", user.phone),
            exclude_id=user.id,
        )

        password = data.pop("password", None)
        if password is not None:
            user.password_hash = hash_password(password)
        for field, value in data.items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)

        return self.users.save(user)

    def delete_user(self, user: User) -> None:
        """Remove the account; its donations are kept without an owner."""
        detached = DonationRepository(self.session, self.logger).detach_owner(user.id)
        user_id = user.id
        self.users.delete(user)
        self.logger.info("Deleted user %s, detached %d donations", user_id, detached)

    def register_admin(self, admin_in: AdminCreate) -> Admin:
        email = admin_in.email.lower()
        self._ensure_unique(self.admins, email, admin_in.phone)

        admin = Admin(
            full_name=admin_in.full_name.strip(),
            email=email,
            password_hash=hash_password(admin_in.password),
            phone=admin_in.phone,
            city=admin_in.city.strip(),
            pincode=admin_in.pincode.strip(),
            address=admin_in.address.strip(),
        )
        admin = self.admins.save(admin)
        self.logger.info("Registered admin %s", admin.id)
        return admin

    def authenticate_admin(self, payload: LoginData) -> Admin:
        admin = self.admins.get_by_email(payload.email)
        if admin is None or not verify_password(payload.password, admin.password_hash):
            self.logger.warning("Failed admin login for %s", payload.email)
            raise AuthenticationRequired("Invalid credentials")
        return admin

    def reset_admin_password(self, admin: Admin, payload: PasswordReset) -> Admin:
        if not verify_password(payload.current_password, admin.password_hash):
            raise AuthenticationRequired("Current password is incorrect")
        admin.password_hash = hash_password(payload.new_password)
        return self.admins.save(admin)
