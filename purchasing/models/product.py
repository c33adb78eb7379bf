"""
Product models - purchasable catalog entries.
"""

from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict

from purchasing.models.events import EventParameters, compact_parameters


class ProductDuration(str, Enum):
    """Subscription period unit of a product."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class AnyProduct(BaseModel):
    """
    Backend-agnostic product.

    Serialized keys: id, title, subtitle, price_string, product_duration.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    subtitle: str
    price_string: str
    product_duration: ProductDuration | None = None

    @property
    def price_string_with_duration(self) -> str:
        """Price with its billing period, e.g. "$9.99 / month"."""
        if self.product_duration is not None:
            return f"{self.price_string} / {self.product_duration.value}"
        return self.price_string

    @property
    def event_parameters(self) -> EventParameters:
        """Analytics projection, every key prefixed with product_."""
        return compact_parameters(
            {
                "product_id": self.id,
                "product_title": self.title,
                "product_subtitle": self.subtitle,
                "product_price_string": self.price_string,
                "product_product_duration": self.product_duration,
            }
        )

    @classmethod
    def mock_yearly(cls) -> "AnyProduct":
        return cls(
            id="mock.yearly.id",
            title="Yearly subscription",
            subtitle="This is a yearly subscription description.",
            price_string="$99/year",
            product_duration=ProductDuration.YEAR,
        )

    @classmethod
    def mock_monthly(cls) -> "AnyProduct":
        return cls(
            id="mock.monthly.id",
            title="Monthly subscription",
            subtitle="This is a monthly subscription description.",
            price_string="$10/month",
            product_duration=ProductDuration.MONTH,
        )

    @classmethod
    def mocks(cls) -> list["AnyProduct"]:
        return [cls.mock_yearly(), cls.mock_monthly()]


def products_event_parameters(products: Sequence[AnyProduct]) -> EventParameters:
    """
    Aggregate analytics projection for a product list.

    Per-product keys are disambiguated by appending the product id.
    """
    params: EventParameters = {
        "products_count": len(products),
        "products_ids": ", ".join(sorted(product.id for product in products)),
    }
    for product in products:
        for key, value in product.event_parameters.items():
            params[f"{key}_{product.id}"] = value
    return params
