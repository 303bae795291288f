"""Customer-facing collaborators: address book and customer directory.

Both are owned by other services. Checkout reads a default address when the
buyer supplies none, and the profile for the order's customer snapshot.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Address:
    full_name: str
    phone: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str = "India"
    email: str | None = None
    landmark: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CustomerProfile:
    name: str
    email: str | None = None
    phone: str | None = None


class AddressBook(ABC):
    @abstractmethod
    def get_default_address(self, owner) -> Address | None:
        """The owner's default address, or None if they have not set one."""
        ...


class CustomerDirectory(ABC):
    @abstractmethod
    def get_profile(self, owner) -> CustomerProfile | None:
        """Name and contact details of the owner, or None if unknown."""
        ...
