"""User directory: profile lookup and search for display enrichment.

Profiles live in the ``users`` collection of the flat DB. The directory
only ever decorates results; a failed lookup yields a placeholder and a
failed search yields no results, never an error.
"""

import logging

from pydantic import ValidationError

from ..models.connection import DisplayInfo, UserProfile
from ..storage.collection_db import CollectionDB

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
MIN_QUERY_LENGTH = 2
MAX_SEARCH_RESULTS = 10


class UserDirectory:
    """Read-only view over stored user profiles."""

    def __init__(self, db: CollectionDB):
        self.db = db

    async def _profiles(self) -> list[UserProfile]:
        profiles = []
        for record in await self.db.get_collection(USERS_COLLECTION):
            try:
                profiles.append(UserProfile.model_validate(record))
            except ValidationError:
                logger.debug(f"Skipping malformed user record: {record!r}")
        return profiles

    async def lookup(self, user_id: str) -> UserProfile | None:
        for profile in await self._profiles():
            if profile.id == user_id:
                return profile
        return None

    async def display_for(self, user_ids: list[str]) -> dict[str, DisplayInfo]:
        """
        Resolve display metadata for several users with one directory read.

        Unknown users, and every user when the directory cannot be read,
        get the "Unknown" placeholder.
        """
        try:
            profiles = {p.id: p for p in await self._profiles()}
        except Exception as e:
            logger.warning(f"User directory unavailable, using placeholders: {e}")
            profiles = {}

        return {
            uid: DisplayInfo.from_profile(profiles[uid]) if uid in profiles else DisplayInfo.placeholder(uid)
            for uid in user_ids
        }

    async def add_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile (used for seeding and by tests)."""
        async with self.db.locked(USERS_COLLECTION):
            records = [r for r in await self.db.get_collection(USERS_COLLECTION) if r.get("id") != profile.id]
            records.append(profile.model_dump(mode="json"))
            await self.db.save_collection(USERS_COLLECTION, records)

    async def search_users(self, query: str, current_user_id: str) -> list[UserProfile]:
        """
        Case-insensitive substring search on username and name.

        Args:
            query: Search text; fewer than 2 characters returns nothing
            current_user_id: Caller, excluded from the results

        Returns:
            At most 10 matching profiles
        """
        if not query or len(query.strip()) < MIN_QUERY_LENGTH:
            return []

        needle = query.strip().lower()
        try:
            profiles = await self._profiles()
        except Exception as e:
            logger.error(f"User search failed: {e}")
            return []

        results = [
            p
            for p in profiles
            if p.id != current_user_id
            and ((p.username and needle in p.username.lower()) or (p.name and needle in p.name.lower()))
        ]
        logger.debug(f"User search '{query}' matched {len(results)} profile(s)")
        return results[:MAX_SEARCH_RESULTS]
