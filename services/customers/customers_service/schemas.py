"""
Customers Service - リクエスト / レスポンスモデル
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator


class CreateCustomerRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    phone: str | None = Field(None, min_length=5, max_length=50)


class UpdateCustomerRequest(BaseModel):
    name: str | None = Field(None, min_length=3, max_length=255)
    email: EmailStr | None = Field(None, max_length=255)
    phone: str | None = Field(None, min_length=5, max_length=50)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        # phone だけは null で消せる
        for name in ("name", "email"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class Customer(BaseModel):
    id: int
    name: str
    email: str
    phone: str | None
    created_at: datetime
