"""Authentication service for CabShare application."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

import bcrypt
import jwt

from cabshare import config
from cabshare.models import UserProfile
from cabshare.services.session_store import SessionStore, ValidationError
from cabshare.storage import keys

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Custom exception for authentication errors."""
    pass


@dataclass
class Session:
    """
    The signed-in user's session.

    Services that act for the user receive this object instead of reading a
    global. It exists from sign-in until sign-out.
    """
    user_id: str
    email: str
    token: str
    store: SessionStore

    @property
    def profile(self) -> Optional[UserProfile]:
        return self.store.get_profile()


class AuthService:
    """Service for handling sign-up, sign-in and sign-out."""

    def __init__(self, store: SessionStore):
        self.store = store

    @staticmethod
    def _hash_password(password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            str: Hashed password
        """
        password_bytes = password.encode('utf-8')
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password_bytes, salt)
        return hashed.decode('utf-8')

    @staticmethod
    def _verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Previously hashed password

        Returns:
            bool: True if password matches, False otherwise
        """
        if not hashed_password:
            return False

        try:
            return bcrypt.checkpw(plain_password.encode('utf-8'),
                                  hashed_password.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Password verification error: {str(e)}")
            return False

    @staticmethod
    def _generate_jwt(user_id: str) -> str:
        payload = {
            "user_id": user_id,
            "exp": datetime.utcnow() + timedelta(hours=config.JWT_EXPIRATION_HOURS),
            "iat": datetime.utcnow()
        }
        return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        """
        Verify a session token and return its payload.

        Raises:
            AuthError: If token is invalid or expired
        """
        try:
            return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        except jwt.PyJWTError as e:
            raise AuthError(f"Invalid token: {str(e)}")

    def _get_accounts(self) -> Dict[str, Dict[str, Any]]:
        accounts = self.store.read_json(keys.ACCOUNTS)
        if not isinstance(accounts, dict):
            return {}
        return accounts

    def _start_session(self, account: Dict[str, Any]) -> Session:
        token = self._generate_jwt(account["id"])
        self.store.write_json(keys.USER, {
            "id": account["id"],
            "email": account["email"],
            "token": token,
        })
        logger.info(f"Signed in {account['email']}")
        return Session(user_id=account["id"], email=account["email"],
                       token=token, store=self.store)

    def sign_up(self, email: str, password: str, name: str,
                phone: Optional[str] = None) -> Session:
        """
        Register a new account, create its profile and sign it in.

        Args:
            email: User's email
            password: User's password
            name: User's display name
            phone: User's phone number

        Returns:
            Session: The new session

        Raises:
            ValidationError: If a required field is blank
            AuthError: If the account already exists or cannot be saved
        """
        email = (email or "").strip().lower()
        name = (name or "").strip()
        if not email or not password or not name:
            raise ValidationError("Email, password and name are required.")

        accounts = self._get_accounts()
        if email in accounts:
            raise AuthError(f"User with email {email} already exists")

        account = {
            "id": str(uuid4()),
            "email": email,
            "name": name,
            "phone": phone or None,
            "password": self._hash_password(password),
            "created_at": datetime.now().isoformat(),
        }
        accounts[email] = account
        if not self.store.write_json(keys.ACCOUNTS, accounts):
            raise AuthError("Registration failed: account could not be saved")

        logger.info(f"Creating new user: {email}")
        self.store.create_profile(email, name, phone or None, user_id=account["id"])
        return self._start_session(account)

    def sign_in(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        A profile is created for the account when the stored profile is
        missing or belongs to someone else.

        Raises:
            ValidationError: If a required field is blank
            AuthError: If the credentials are wrong
        """
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required.")

        account = self._get_accounts().get(email)
        if account is None:
            raise AuthError(f"No user found with email {email}")
        if not self._verify_password(password, account.get("password")):
            raise AuthError("Invalid password")

        profile = self.store.get_profile()
        if profile is None or profile.id != account["id"]:
            self.store.create_profile(email, account.get("name") or email.split("@")[0],
                                      account.get("phone"), user_id=account["id"],
                                      is_verified=True)

        return self._start_session(account)

    def current_session(self) -> Optional[Session]:
        """Return the stored session, or None when nobody is signed in."""
        user = self.store.read_json(keys.USER)
        if not isinstance(user, dict) or not user.get("token"):
            return None

        try:
            payload = self.verify_token(user["token"])
        except AuthError as e:
            logger.warning(f"Stored session is no longer valid: {str(e)}")
            return None

        return Session(user_id=payload["user_id"], email=user.get("email", ""),
                       token=user["token"], store=self.store)

    def sign_out(self) -> None:
        """Tear down the session: user, profile and search state are removed."""
        self.store.clear_session()
        logger.info("Signed out")
