from fastapi import APIRouter

from crm_tables.schemas.invoice import GstIn, GstTotals
from crm_tables.services.gst import calculate_gst

router = APIRouter()


@router.post("/gst", response_model=GstTotals)
def gst_totals(payload: GstIn):
    return calculate_gst(payload.amount, payload.discount, payload.gst_rate, payload.paid_amount)
