"""Tests for the local admin bootstrap script."""

from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest
from sqlmodel import select

from scheduler.models.membership import Membership
from scheduler.models.organization import Organization
from scheduler.models.resources import Crew, Depot
from scheduler.models.user import User
from scheduler.scripts.create_local_admin import create_admin


@pytest.fixture
def script_session(session_factory):
    @asynccontextmanager
    async def _session_context():
        async with session_factory() as s:
            yield s
            await s.commit()

    with patch("scheduler.scripts.create_local_admin.get_session_context", _session_context):
        yield


class TestCreateLocalAdmin:
    @pytest.mark.asyncio
    async def test_creates_user_org_membership_and_depot(self, session_factory, script_session):
        await create_admin("Dev@Example.com", "secret1", "Local Drains")

        async with session_factory() as s:
            user = (await s.execute(select(User))).scalar_one()
            assert user.email == "dev@example.com"
            org = (await s.execute(select(Organization))).scalar_one()
            assert org.name == "Local Drains"
            assert org.plan == "pro"
            membership = (await s.execute(select(Membership))).scalar_one()
            assert membership.role == "admin"
            assert (await s.execute(select(Depot))).scalar_one().name == "Main Depot"
            assert len((await s.execute(select(Crew))).scalars().all()) == 2

    @pytest.mark.asyncio
    async def test_idempotent(self, session_factory, script_session):
        await create_admin("dev@example.com", "secret1", "Local Drains")
        await create_admin("dev@example.com", "secret1", "Local Drains")

        async with session_factory() as s:
            assert len((await s.execute(select(User))).scalars().all()) == 1
            assert len((await s.execute(select(Organization))).scalars().all()) == 1
            assert len((await s.execute(select(Membership))).scalars().all()) == 1
