"""
Data source interface for populating new snapshots.

The API client lives outside this package; it only has to implement
SnapshotSource for the store to capture its collections.
"""

from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import ContactList, RouteList


class SnapshotSource(ABC):
    """
    Abstract base class for anything that yields route/contact collections.

    Sources are responsible for fetching current registry data and
    returning it as model collections; they never touch the state directory.
    """

    @abstractmethod
    def fetch_routes(self) -> Optional["RouteList"]:
        """
        Fetch the current route objects.

        Returns:
            RouteList, or None if this source has no route data

        Raises:
            Exception if the fetch fails
        """
        pass

    @abstractmethod
    def fetch_contacts(self) -> Optional["ContactList"]:
        """
        Fetch the current contacts.

        Returns:
            ContactList, or None if this source has no contact data
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the source name/identifier."""
        pass
