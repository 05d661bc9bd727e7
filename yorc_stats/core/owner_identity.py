"""
Owner resolution for submitted snapshots.
"""

from typing import Optional

from yorc_stats.storage.models import Owner
from yorc_stats.storage.repository import YoRCRepository


class OwnerIdentityService:
    """Maps a user login onto an Owner, creating the owner on first use."""

    def __init__(self, repository: YoRCRepository):
        self.repository = repository

    def find_or_create_owner(self, login: Optional[str]) -> Optional[Owner]:
        """Resolve the owner for a login.

        Args:
            login: User login, or None for anonymous submissions

        Returns:
            The existing or newly created owner; None when anonymous
        """
        if not login:
            return None
        owner = self.repository.find_owner_by_login(login)
        if owner is None:
            owner = self.repository.insert_owner(login)
        return owner
