"""
User registration and credential checks.
"""

import asyncio
from typing import Any, Dict, Optional

import bcrypt
import structlog
from pymongo.errors import DuplicateKeyError, PyMongoError

from .database import LibraryDatabase
from .errors import NotFound, PersistenceError, Unauthorized, ValidationError
from .models import Role, UserDocument

logger = structlog.get_logger(__name__)

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


class UserService:
    """Creates users and checks their credentials."""

    def __init__(self, db: LibraryDatabase):
        self.db = db

    async def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Optional[str]
    ) -> Dict[str, Any]:
        """
        Create a user with a hashed password.

        Returns:
            The stored user document

        Raises:
            ValidationError: If a field is missing, the role is unknown or the email is taken
        """
        if not name or not email or not password or not role:
            raise ValidationError("All fields are required")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Role must be one of: {[r.value for r in Role]}")

        try:
            existing = await self.db.users.find_one({"email": email})
        except PyMongoError as e:
            logger.error("Failed to look up user", email=email, error=str(e))
            raise PersistenceError("Database error") from e
        if existing:
            raise ValidationError("User already exists")

        hashed = await asyncio.to_thread(hash_password, password)
        user = UserDocument(name=name, email=email, password=hashed, role=role).to_mongo()
        try:
            result = await self.db.users.insert_one(user)
        except DuplicateKeyError:
            raise ValidationError("User already exists")
        except PyMongoError as e:
            logger.error("Failed to create user", email=email, error=str(e))
            raise PersistenceError("Database error") from e

        user["_id"] = result.inserted_id
        logger.info("User registered", user_id=str(result.inserted_id), role=user["role"])
        return user

    async def authenticate(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Check an email/password pair.

        Raises:
            ValidationError: If a field is missing
            NotFound: If no user has this email
            Unauthorized: If the password does not match
        """
        if not email or not password:
            raise ValidationError("All fields are required")

        try:
            user = await self.db.users.find_one({"email": email})
        except PyMongoError as e:
            logger.error("Failed to look up user", email=email, error=str(e))
            raise PersistenceError("Database error") from e
        if not user:
            raise NotFound("User not found")

        if not await asyncio.to_thread(verify_password, password, user["password"]):
            logger.warning("Invalid credentials", email=email)
            raise Unauthorized("Invalid credentials")
        return user
