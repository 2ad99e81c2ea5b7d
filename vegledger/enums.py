from __future__ import annotations

from enum import Enum

from vegledger.errors import ValidationError


class _Choice(str, Enum):
    @classmethod
    def parse(cls, value) -> "_Choice":
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().lower()
        for member in cls:
            if member.value == s:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(f"Invalid {cls.__name__} '{value}'. Use one of: {allowed}.")

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


class VerificationStatus(_Choice):
    PENDING = "pending"
    VERIFIED = "verified"
    DISCREPANCY = "discrepancy"


class CrateStatus(_Choice):
    PENDING = "pending"
    PARTIAL = "partial"
    RETURNED = "returned"


class PaymentMethod(_Choice):
    CASH = "cash"
    UPI = "upi"
    CARD = "card"
    CREDIT = "credit"


class ExpenseCategory(_Choice):
    TRANSPORTATION = "transportation"
    STORAGE = "storage"
    UTILITIES = "utilities"
    LABOR = "labor"
    RENT = "rent"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class ItemCategory(_Choice):
    VEGETABLE = "vegetable"
    FRUIT = "fruit"


class BillType(_Choice):
    PARENT = "parent"
    CHILD = "child"


# Display labels; every member must have one (checked in tests).
PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.UPI: "UPI",
    PaymentMethod.CARD: "Card",
    PaymentMethod.CREDIT: "Credit",
}

EXPENSE_CATEGORY_LABELS = {
    ExpenseCategory.TRANSPORTATION: "Transportation",
    ExpenseCategory.STORAGE: "Storage",
    ExpenseCategory.UTILITIES: "Utilities",
    ExpenseCategory.LABOR: "Labor",
    ExpenseCategory.RENT: "Rent",
    ExpenseCategory.MAINTENANCE: "Maintenance",
    ExpenseCategory.OTHER: "Other",
}

VERIFICATION_STATUS_LABELS = {
    VerificationStatus.PENDING: "Pending",
    VerificationStatus.VERIFIED: "Verified",
    VerificationStatus.DISCREPANCY: "Discrepancy",
}

CRATE_STATUS_LABELS = {
    CrateStatus.PENDING: "Pending",
    CrateStatus.PARTIAL: "Partial",
    CrateStatus.RETURNED: "Returned",
}
