import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["SEED_DEMO_DATA"] = "false"

from dataclasses import dataclass

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shiftdesk.auth import create_token, hash_password
from shiftdesk.database import Base, async_session, engine
from shiftdesk.main import app
from shiftdesk.models import Hospital, HospitalMembership, User

PASSWORD = "secret123"


@dataclass
class Member:
    user_id: str
    email: str
    name: str
    membership_id: int
    headers: dict


@dataclass
class World:
    hospital_id: str
    admin: Member
    coordinator: Member
    alice: Member
    bob: Member
    carol: Member
    other_hospital_id: str
    outsider: Member


async def _add_member(session, hospital_id: str, email: str, name: str, role: str) -> Member:
    user = User(email=email, full_name=name, password_hash=hash_password(PASSWORD))
    session.add(user)
    await session.flush()
    membership = HospitalMembership(hospital_id=hospital_id, user_id=user.id, role=role)
    session.add(membership)
    await session.flush()
    return Member(
        user_id=user.id,
        email=email,
        name=name,
        membership_id=membership.id,
        headers={"Authorization": f"Bearer {create_token(user)}"},
    )


@pytest_asyncio.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def world() -> World:
    """One hospital with an admin, a coordinator and three doctors, plus a second hospital."""
    async with async_session() as session:
        hospital = Hospital(name="St. Mary")
        other = Hospital(name="County General")
        session.add_all([hospital, other])
        await session.flush()

        w = World(
            hospital_id=hospital.id,
            admin=await _add_member(session, hospital.id, "admin@example.com", "Admin", "admin"),
            coordinator=await _add_member(session, hospital.id, "coord@example.com", "Cora Coordinator", "coordinator"),
            alice=await _add_member(session, hospital.id, "alice@example.com", "Alice Adams", "doctor"),
            bob=await _add_member(session, hospital.id, "bob@example.com", "Bob Brown", "doctor"),
            carol=await _add_member(session, hospital.id, "carol@example.com", "Carol Clark", "doctor"),
            other_hospital_id=other.id,
            outsider=await _add_member(session, other.id, "owen@example.com", "Owen Other", "doctor"),
        )
        await session.commit()
    return w


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client
