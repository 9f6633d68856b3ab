"""
SQLAlchemy-backed UserStore.

Profiles and contacts are upserted by primary key with session.merge();
the last write wins for every column.
"""

from typing import Callable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.errors import NotFound
from common.ports import UserStore
from common.schemas import EmergencyContact, UserProfile
from models.user_models import EmergencyContactRow, User


class SqlUserStore(UserStore):
    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def get_user(self, user_id: str) -> UserProfile:
        async with self.session_factory() as db:
            row = await db.get(User, user_id)
            if row is None:
                raise NotFound(f"User '{user_id}' not found")
            return UserProfile(
                user_id=row.user_id,
                name=row.name,
                email=row.email,
                phone=row.phone,
                nationality=row.nationality,
                preferred_language=row.preferred_language,
            )

    async def get_emergency_contacts(self, user_id: str) -> List[EmergencyContact]:
        stmt = select(EmergencyContactRow).where(EmergencyContactRow.user_id == user_id)
        async with self.session_factory() as db:
            rows = (await db.scalars(stmt)).all()
        return [
            EmergencyContact(
                contact_id=r.contact_id,
                name=r.name,
                phone=r.phone,
                email=r.email,
                relationship=r.relation,
                is_primary=r.is_primary,
            )
            for r in rows
        ]

    async def upsert_user(self, profile: UserProfile) -> UserProfile:
        async with self.session_factory() as db:
            await db.merge(
                User(
                    user_id=profile.user_id,
                    name=profile.name,
                    email=profile.email,
                    phone=profile.phone,
                    nationality=profile.nationality,
                    preferred_language=profile.preferred_language,
                )
            )
            await db.commit()
        return profile

    async def upsert_contact(self, user_id: str, contact: EmergencyContact) -> EmergencyContact:
        async with self.session_factory() as db:
            if await db.get(User, user_id) is None:
                raise NotFound(f"User '{user_id}' not found")
            await db.merge(
                EmergencyContactRow(
                    contact_id=contact.contact_id,
                    user_id=user_id,
                    name=contact.name,
                    phone=contact.phone,
                    email=contact.email,
                    relation=contact.relationship,
                    is_primary=contact.is_primary,
                )
            )
            await db.commit()
        return contact

    async def remove_contact(self, user_id: str, contact_id: str) -> None:
        async with self.session_factory() as db:
            row = await db.get(EmergencyContactRow, contact_id)
            if row is None or row.user_id != user_id:
                raise NotFound(f"Contact '{contact_id}' not found")
            await db.delete(row)
            await db.commit()
