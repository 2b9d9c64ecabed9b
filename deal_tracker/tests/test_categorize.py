from __future__ import annotations

import pytest

from deal_tracker.coupons.categorize import (
    CATEGORY_LABELS,
    Category,
    categorize,
    group_by_category,
    split_late_night,
)
from deal_tracker.coupons.models import Coupon


def _coupon(**fields) -> Coupon:
    return Coupon.model_validate(fields)


class TestCategorize:
    @pytest.mark.parametrize(
        ("name", "description", "expected"),
        [
            ("Night Owl Special", "Any large pizza", Category.late_night),
            ("Mix & Match", "After 10 only", Category.late_night),
            ("Family Combo", "Two mediums and a soda", Category.bundle),
            ("Perfect Meal Deal", "", Category.bundle),
            ("Large 3-Topping Pizza", "Carryout or delivery", Category.pizza),
            ("Thin Crust Tuesday", "", Category.pizza),
            ("8-Piece Wings", "", Category.wings),
            ("Stuffed Cheesy Bread", "", Category.wings),
            ("Flash Sale", "Today only", Category.limited_time),
            ("Mix & Match", "Choose any 2 or more", Category.default),
        ],
    )
    def test_keyword_groups(self, name, description, expected):
        assert categorize(_coupon(Name=name, Description=description)) is expected

    def test_late_night_wins_over_pizza(self):
        coupon = _coupon(Name="Midnight Pizza", Description="Large pizza after dark")
        assert categorize(coupon) is Category.late_night

    def test_bundle_flag_from_string(self):
        coupon = _coupon(Name="Two Mediums", Bundle="true")
        assert coupon.bundle is True
        assert categorize(coupon) is Category.bundle

    def test_bundle_beats_pizza(self):
        coupon = _coupon(Name="Pizza Combo")
        assert categorize(coupon) is Category.bundle

    def test_delivery_service_method(self):
        coupon = _coupon(Name="Free Delivery Fee", ServiceMethod="Delivery")
        assert categorize(coupon) is Category.delivery

    def test_delivery_only_valid_methods(self):
        coupon = _coupon(Name="Any Order", ValidServiceMethods="Delivery")
        assert categorize(coupon) is Category.delivery

    def test_multiple_valid_methods_are_not_service_specific(self):
        coupon = _coupon(Name="Any Order", ValidServiceMethods=["Delivery", "Carryout"])
        assert categorize(coupon) is Category.default

    def test_carryout_service_method(self):
        coupon = _coupon(Name="Any Order", ServiceMethod="Carryout")
        assert categorize(coupon) is Category.carryout

    def test_food_keywords_beat_service_method(self):
        coupon = _coupon(Name="Wings Deal", ServiceMethod="Carryout")
        assert categorize(coupon) is Category.wings

    def test_empty_coupon_is_default(self):
        assert categorize(Coupon()) is Category.default

    def test_every_category_has_a_label(self):
        assert set(CATEGORY_LABELS) == set(Category)


def test_group_by_category_uses_display_order():
    coupons = [
        _coupon(ID="1", Name="Choose any 2"),
        _coupon(ID="2", Name="Boneless Wings"),
        _coupon(ID="3", Name="Large Pizza"),
        _coupon(ID="4", Name="Medium Pizza"),
    ]
    groups = group_by_category(coupons)

    assert list(groups) == [Category.pizza, Category.wings, Category.default]
    assert [c.id for c in groups[Category.pizza]] == ["3", "4"]


def test_split_late_night_preserves_order():
    coupons = [
        _coupon(ID="1", Name="Large Pizza"),
        _coupon(ID="2", Name="Late Night Wings"),
        _coupon(ID="3", Name="Pasta"),
    ]
    late_night, regular = split_late_night(coupons)

    assert [c.id for c in late_night] == ["2"]
    assert [c.id for c in regular] == ["1", "3"]
