"""Pydantic request models for the REST API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InitAccountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    account_type: Optional[str] = Field(default=None, alias="accountType")


class PaymentWebhook(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[str] = Field(default=None, alias="from")
    amount: Optional[str] = None
    memo: Optional[str] = None
