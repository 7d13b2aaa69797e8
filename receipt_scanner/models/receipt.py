"""
Receipt data contract.

Defines what a language-model response must look like before it is trusted
as structured receipt data. Numeric fields accept numbers or numeric strings
("12.50") and are coerced to floats; anything else, including NaN and
infinity, fails validation of the whole receipt.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ReceiptCategory(str, Enum):
    FOOD = "Food"
    HEALTH = "Health"
    TRANSPORT = "Transport"
    UTILITIES = "Utilities"
    BILLS = "Bills"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    EDUCATION = "Education"
    OTHER = "Other"


RECEIPT_CATEGORIES = [c.value for c in ReceiptCategory]


def display_category(category: str | None) -> str:
    """Categories outside the closed set are shown as Other."""
    if category in RECEIPT_CATEGORIES:
        return category
    return ReceiptCategory.OTHER.value


class _ContractModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )


class ReceiptItem(_ContractModel):
    name: str
    quantity: float = 1
    price: float  # line total, not unit price

    @field_validator("quantity", mode="before")
    @classmethod
    def default_missing_quantity(cls, v):
        return 1 if v is None else v


class ReceiptData(_ContractModel):
    store_name: str | None = None
    date: str | None = None  # YYYY-MM-DD, kept as text
    category: str | None = None  # not rejected when outside ReceiptCategory
    items: list[ReceiptItem] = Field(default_factory=list)
    subtotal: float | None = None
    tax: float | None = None
    total: float
