"""Tests for the shared totals computation."""

from checkout.cart.pricing import FIXED, PERCENTAGE, compute_totals, coupon_effect


class TestCouponEffect:
    def test_percentage(self):
        assert coupon_effect(200.0, PERCENTAGE, 10) == 20.0

    def test_fixed(self):
        assert coupon_effect(200.0, FIXED, 35) == 35


class TestComputeTotals:
    def test_plain_lines(self):
        totals = compute_totals([(100.0, 2)])
        assert totals.subtotal == 200.0
        assert totals.discount == 0.0
        assert totals.tax == 20.0
        assert totals.total == 220.0

    def test_coupons_apply_to_subtotal(self):
        totals = compute_totals([(100.0, 2)], coupons=[(PERCENTAGE, 10), (FIXED, 20)])
        assert totals.discount == 40.0
        assert totals.tax == 16.0
        assert totals.total == 176.0

    def test_discount_capped_at_subtotal(self):
        totals = compute_totals([(50.0, 1)], coupons=[(FIXED, 80)])
        assert totals.discount == 50.0
        assert totals.total == 0.0

    def test_shipping_is_not_taxed(self):
        totals = compute_totals([(100.0, 1)], tax_rate=0.18, shipping_cost=40)
        assert totals.tax == 18.0
        assert totals.shipping_cost == 40.0
        assert totals.total == 158.0

    def test_rounding_to_two_places(self):
        totals = compute_totals([(33.333, 3)], tax_rate=0.05)
        assert totals.subtotal == 100.0
        assert totals.tax == 5.0

    def test_empty(self):
        totals = compute_totals([])
        assert totals.total == 0.0
