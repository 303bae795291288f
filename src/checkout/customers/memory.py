"""In-memory address book and customer directory for development and tests."""

from checkout.customers.port import Address, AddressBook, CustomerDirectory, CustomerProfile


class InMemoryAddressBook(AddressBook):
    def __init__(self):
        self._defaults: dict[tuple[str, str], Address] = {}

    def set_default(self, owner, address: Address) -> None:
        self._defaults[(owner.kind, owner.id)] = address

    def get_default_address(self, owner) -> Address | None:
        return self._defaults.get((owner.kind, owner.id))

    def reset(self) -> None:
        self._defaults.clear()


class InMemoryCustomerDirectory(CustomerDirectory):
    def __init__(self):
        self._profiles: dict[tuple[str, str], CustomerProfile] = {}

    def register(self, owner, profile: CustomerProfile) -> None:
        self._profiles[(owner.kind, owner.id)] = profile

    def get_profile(self, owner) -> CustomerProfile | None:
        return self._profiles.get((owner.kind, owner.id))

    def reset(self) -> None:
        self._profiles.clear()
