"""Composition root: the adapters and services the application runs with.

Built once at startup from ``Settings`` and handed to whoever needs them;
tests build their own with fakes.
"""

from dataclasses import dataclass

from checkout.config import Settings
from checkout.customers.memory import InMemoryAddressBook, InMemoryCustomerDirectory
from checkout.notifications import create_notifier
from checkout.payment.gateway import create_gateway
from checkout.payment.verification import PaymentVerifier
from checkout.placement.orchestrator import CheckoutOrchestrator


@dataclass
class Services:
    settings: Settings
    gateway: object
    notifier: object
    address_book: object
    directory: object
    orchestrator: CheckoutOrchestrator
    verifier: PaymentVerifier


def build_services(settings: Settings, gateway=None, notifier=None, address_book=None, directory=None) -> Services:
    gateway = gateway or create_gateway(settings)
    notifier = notifier or create_notifier(settings)
    address_book = address_book or InMemoryAddressBook()
    directory = directory or InMemoryCustomerDirectory()

    return Services(
        settings=settings,
        gateway=gateway,
        notifier=notifier,
        address_book=address_book,
        directory=directory,
        orchestrator=CheckoutOrchestrator(gateway, address_book, directory, settings),
        verifier=PaymentVerifier(
            settings.gateway_key_secret,
            notifier=notifier,
            send_confirmation=settings.send_confirmation_emails,
        ),
    )
