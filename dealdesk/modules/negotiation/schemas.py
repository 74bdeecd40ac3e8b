"""Negotiation Pydantic schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field


class OfferRequest(BaseModel):
    amount: Decimal = Field(..., description="Offered amount in major currency units")
