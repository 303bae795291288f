"""Checkout domain: carts, orders, payment audits and product inventory.

All aggregates live in one domain so that checkout and payment verification
can move several of them together.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging

configure_logging()

# Domain Composition Root
checkout = Domain(name="checkout")
