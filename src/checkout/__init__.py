"""Checkout-to-payment reconciliation engine.

Turns a shopping cart into a durable order, asks the payment gateway for an
intent, and reconciles the gateway's confirmation with the order, the payment
audit ledger, product inventory and the cart.
"""
