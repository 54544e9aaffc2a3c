"""
Unit tests for catalog domain models: Category, Brand, Product,
AttributeDefinition and ProductType

Author: TM3
Date: 2025-12-02
"""
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import DomainException
from app.domain.attribute import AttributeDefinition, AttributeType, PredefinedValueInput
from app.domain.brand import Brand
from app.domain.category import Category, slugify
from app.domain.money import Money
from app.domain.product import PriceTier, Product, ProductStatus
from app.domain.product_type import ProductType, ResolvedProductTypeAttribute


def make_product(**kwargs) -> Product:
    defaults = dict(
        sku="LPT-001",
        name="Laptop 14",
        category_id=uuid4(),
        list_price=Money(Decimal("1000"), "TRY"),
    )
    defaults.update(kwargs)
    return Product.create(**defaults)


class TestCategory:

    def test_slug_is_ascii(self):
        assert slugify("Çocuk Giyim & Ayakkabı") == "cocuk-giyim-ayakkab"
        assert slugify("!!!") == "category"

    def test_name_is_required(self):
        with pytest.raises(DomainException, match="Category name is required"):
            Category.create("   ")

    def test_create_from_external_marks_synced(self):
        category = Category.create_from_external(" ERP-1 ", "Electronics", external_code="EL")

        assert category.external_id == "ERP-1"
        assert category.external_code == "EL"
        assert category.is_synced

    def test_cannot_be_own_parent(self):
        category = Category.create("Electronics")

        with pytest.raises(DomainException, match="own parent"):
            category.set_parent(category.id)


class TestBrand:

    def test_update_from_external_keeps_code_when_not_given(self):
        brand = Brand.create_from_external("B-1", "Acme", external_code="ACM")

        brand.update_from_external("Acme Corp", None, None, None)

        assert brand.name == "Acme Corp"
        assert brand.external_code == "ACM"


class TestProduct:

    def test_sku_and_name_are_required(self):
        with pytest.raises(DomainException, match="SKU is required"):
            make_product(sku=" ")
        with pytest.raises(DomainException, match="name is required"):
            make_product(name="")

    def test_quantities_are_validated(self):
        with pytest.raises(DomainException, match="Stock quantity cannot be negative"):
            make_product(stock_quantity=-1)
        with pytest.raises(DomainException, match="Minimum order quantity"):
            make_product(minimum_order_quantity=0)

    def test_tax_rate_between_zero_and_one(self):
        with pytest.raises(DomainException, match="Tax rate"):
            make_product(tax_rate=Decimal("1.5"))

    def test_tier_price_falls_back_to_list_price(self):
        product = make_product()
        product.update_pricing(product.list_price, [Money(Decimal("900"), "TRY")])

        assert product.get_price_for_tier(PriceTier.TIER1).amount == Decimal("900")
        assert product.get_price_for_tier(PriceTier.TIER3).amount == Decimal("1000")
        assert product.get_price_for_tier(PriceTier.LIST).amount == Decimal("1000")

    def test_tier_prices_must_share_currency(self):
        product = make_product()

        with pytest.raises(DomainException, match="currency"):
            product.update_pricing(product.list_price, [Money(Decimal("10"), "USD")])

    def test_stock_reservation(self):
        product = make_product(stock_quantity=10)

        product.reserve_stock(4)

        assert product.available_quantity == 6
        with pytest.raises(DomainException, match="Insufficient stock"):
            product.reserve_stock(7)

        product.release_stock(10)
        assert product.reserved_quantity == 0

    def test_update_stock(self):
        product = make_product()
        assert not product.is_in_stock

        product.update_stock(3)

        assert product.is_in_stock
        with pytest.raises(DomainException, match="cannot be negative"):
            product.update_stock(-1)

    def test_status_defaults_from_readiness(self):
        product = make_product()

        product.set_status(None)
        assert product.status == ProductStatus.DRAFT

        product.product_type_id = uuid4()
        product.set_status(None)
        assert product.status == ProductStatus.ACTIVE

    def test_images_are_deduplicated(self):
        product = make_product()

        product.set_images(["a.jpg", "a.jpg", " ", "b.jpg"])

        assert product.image_urls == ["a.jpg", "b.jpg"]

    def test_negative_dimension_is_rejected(self):
        with pytest.raises(DomainException, match="Weight cannot be negative"):
            make_product().update_dimensions(weight=Decimal("-1"))

    def test_cannot_be_variant_of_itself(self):
        product = make_product()

        with pytest.raises(DomainException):
            product.set_main_product(product.id)

    def test_variant_points_to_main_product(self):
        product = make_product()

        product.set_main_product(uuid4())
        assert product.is_variant

        product.set_main_product(None)
        assert not product.is_variant


class TestAttributeDefinition:

    def test_code_is_normalized(self):
        definition = AttributeDefinition.create(" Color ", "Color", AttributeType.SELECT)

        assert definition.code == "color"

    def test_predefined_values_only_for_select(self):
        definition = AttributeDefinition.create("weight", "Weight", AttributeType.NUMBER)

        with pytest.raises(DomainException, match="only allowed for select"):
            definition.add_predefined_value("10")

    def test_duplicate_value_is_rejected_case_insensitively(self):
        definition = AttributeDefinition.create("color", "Color", AttributeType.SELECT)
        definition.add_predefined_value("Red")

        with pytest.raises(DomainException, match="already exists"):
            definition.add_predefined_value("red")

    def test_sync_predefined_values_keeps_ids_and_removes_missing(self):
        definition = AttributeDefinition.create("color", "Color", AttributeType.SELECT)
        red = definition.add_predefined_value("Red", "Red", 1)
        definition.add_predefined_value("Blue")

        definition.sync_predefined_values([
            PredefinedValueInput(value="RED", display_text="Kırmızı", display_order=2),
            PredefinedValueInput(value="Green"),
        ])

        values = {v.value: v for v in definition.predefined_values}
        assert set(values) == {"Red", "Green"}
        assert values["Red"].id == red.id
        assert values["Red"].display_text == "Kırmızı"

    def test_remove_predefined_value(self):
        definition = AttributeDefinition.create("color", "Color", AttributeType.SELECT)
        red = definition.add_predefined_value("Red")
        definition.add_predefined_value("Blue")

        definition.remove_predefined_value(red.id)

        assert [v.value for v in definition.predefined_values] == ["Blue"]
        with pytest.raises(DomainException, match="not found"):
            definition.remove_predefined_value(red.id)

    def test_sync_with_empty_list_clears(self):
        definition = AttributeDefinition.create("color", "Color", AttributeType.SELECT)
        definition.add_predefined_value("Red")

        definition.sync_predefined_values([])

        assert definition.predefined_values == []

    def test_value_validation_by_type(self):
        number = AttributeDefinition.create("ram", "RAM", AttributeType.NUMBER)
        boolean = AttributeDefinition.create("wifi", "WiFi", AttributeType.BOOLEAN)
        multi = AttributeDefinition.create("ports", "Ports", AttributeType.MULTI_SELECT)
        multi.add_predefined_value("USB")
        multi.add_predefined_value("HDMI")

        assert number.is_valid_value("16")
        assert not number.is_valid_value("sixteen")
        assert boolean.is_valid_value("true")
        assert not boolean.is_valid_value("yes")
        assert multi.is_valid_value("usb, HDMI")
        assert not multi.is_valid_value("USB,VGA")


class TestProductType:

    def test_duplicate_attribute_is_rejected(self):
        product_type = ProductType.create("laptop", "Laptop")
        definition_id = uuid4()
        product_type.add_attribute(definition_id)

        with pytest.raises(DomainException, match="already assigned"):
            product_type.add_attribute(definition_id)

    def test_sync_attributes_replaces_assignment(self):
        product_type = ProductType.create("laptop", "Laptop")
        keep, drop, new = uuid4(), uuid4(), uuid4()
        product_type.add_attribute(keep)
        product_type.add_attribute(drop)

        product_type.sync_attributes([
            ResolvedProductTypeAttribute(attribute_definition_id=keep, is_required=True, display_order=1),
            ResolvedProductTypeAttribute(attribute_definition_id=new),
        ])

        assigned = {a.attribute_definition_id: a for a in product_type.attributes}
        assert set(assigned) == {keep, new}
        assert assigned[keep].is_required

    def test_remove_and_clear_attributes(self):
        product_type = ProductType.create("laptop", "Laptop")
        first, second = uuid4(), uuid4()
        product_type.add_attribute(first)
        product_type.add_attribute(second)

        product_type.remove_attribute(first)
        assert [a.attribute_definition_id for a in product_type.attributes] == [second]
        with pytest.raises(DomainException, match="not assigned"):
            product_type.remove_attribute(first)

        product_type.clear_attributes()
        assert product_type.attributes == []
