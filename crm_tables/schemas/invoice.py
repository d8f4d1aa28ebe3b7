from typing import Union

from pydantic import BaseModel

Number = Union[float, str, None]


class GstIn(BaseModel):
    amount: Number = 0
    discount: Number = 0
    gst_rate: Number = 0
    paid_amount: Number = 0


class GstTotals(BaseModel):
    discounted_amount: float
    gst_amount: float
    total_without_gst: float
    total_with_gst: float
    remaining_amount: float
