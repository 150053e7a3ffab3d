"""
Tests for registration and credential checks.
"""

import pytest

from library.errors import NotFound, Unauthorized, ValidationError
from library.users import UserService, hash_password, verify_password


@pytest.fixture
def user_service(library_db):
    return UserService(library_db)


def test_password_hashing():
    hashed = hash_password("s3cret")

    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret", "not-a-bcrypt-hash")


@pytest.mark.asyncio
async def test_register_stores_hashed_password(user_service, library_db):
    user = await user_service.register("Ada", "ada@example.com", "s3cret", "author")

    stored = await library_db.users.find_one({"_id": user["_id"]})
    assert stored["name"] == "Ada"
    assert stored["role"] == "author"
    assert stored["password"] != "s3cret"
    assert verify_password("s3cret", stored["password"])


@pytest.mark.asyncio
async def test_register_duplicate_email(user_service):
    await user_service.register("Ada", "ada@example.com", "s3cret", "user")

    with pytest.raises(ValidationError, match="User already exists"):
        await user_service.register("Ada Again", "ada@example.com", "other", "user")


@pytest.mark.asyncio
async def test_register_missing_field(user_service):
    with pytest.raises(ValidationError, match="All fields are required"):
        await user_service.register("Ada", "", "s3cret", "user")


@pytest.mark.asyncio
async def test_register_unknown_role(user_service):
    with pytest.raises(ValidationError, match="Role must be one of"):
        await user_service.register("Ada", "ada@example.com", "s3cret", "admin")


@pytest.mark.asyncio
async def test_authenticate(user_service):
    registered = await user_service.register("Ada", "ada@example.com", "s3cret", "user")

    user = await user_service.authenticate("ada@example.com", "s3cret")

    assert user["_id"] == registered["_id"]


@pytest.mark.asyncio
async def test_authenticate_wrong_password(user_service):
    await user_service.register("Ada", "ada@example.com", "s3cret", "user")

    with pytest.raises(Unauthorized, match="Invalid credentials"):
        await user_service.authenticate("ada@example.com", "wrong")


@pytest.mark.asyncio
async def test_authenticate_unknown_email(user_service):
    with pytest.raises(NotFound, match="User not found"):
        await user_service.authenticate("nobody@example.com", "s3cret")
