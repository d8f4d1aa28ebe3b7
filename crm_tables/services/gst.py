from __future__ import annotations

from typing import Any

from crm_tables.schemas.invoice import GstTotals
from crm_tables.services.amounts import to_float

INPUT_FIELDS = ("amount", "discount", "gstRate", "paidAmount")
DERIVED_FIELDS = ("totalWithoutGst", "totalWithGst", "remainingAmount")


class ReadOnlyFieldError(ValueError):
    pass


def calculate_gst(amount: Any, discount_pct: Any, gst_rate_pct: Any, paid_amount: Any) -> GstTotals:
    """Compute invoice totals after discount and GST.

    No rounding and no bounds checks: a discount above 100% or an overpayment
    simply produce negative figures, which callers display as they are.
    """
    base = to_float(amount)
    discounted_amount = base - base * (to_float(discount_pct) / 100)
    gst_amount = discounted_amount * (to_float(gst_rate_pct) / 100)
    total_with_gst = discounted_amount + gst_amount
    return GstTotals(
        discounted_amount=discounted_amount,
        gst_amount=gst_amount,
        total_without_gst=discounted_amount,
        total_with_gst=total_with_gst,
        remaining_amount=total_with_gst - to_float(paid_amount),
    )


class InvoiceForm:
    """In-progress invoice form whose totals follow its inputs.

    Uses the backend's field names so :meth:`payload` can be posted as is.
    """

    def __init__(self, **values: Any):
        for name in DERIVED_FIELDS:
            if name in values:
                raise ReadOnlyFieldError(f'Field "{name}" is calculated and cannot be set')
        self._values: dict[str, Any] = {"amount": 0, "discount": 0, "gstRate": 0, "paidAmount": 0}
        self._values.update(values)
        self._recalculate()

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        if name in DERIVED_FIELDS:
            raise ReadOnlyFieldError(f'Field "{name}" is calculated and cannot be set')
        self._values[name] = value
        if name in INPUT_FIELDS:
            self._recalculate()

    def update(self, **values: Any) -> None:
        for name, value in values.items():
            self.set(name, value)

    @property
    def totals(self) -> GstTotals:
        return calculate_gst(
            self._values.get("amount"),
            self._values.get("discount"),
            self._values.get("gstRate"),
            self._values.get("paidAmount"),
        )

    def _recalculate(self) -> None:
        totals = self.totals
        self._values["totalWithoutGst"] = totals.total_without_gst
        self._values["totalWithGst"] = totals.total_with_gst
        self._values["remainingAmount"] = totals.remaining_amount

    def payload(self) -> dict[str, Any]:
        return dict(self._values)
