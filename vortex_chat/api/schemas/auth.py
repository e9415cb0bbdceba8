from typing import Literal

from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    user_id: str = Field(..., description="Canonical user UUID as string")
    email: str = Field(..., description="User email associated with the principal")
    display_name: str = Field(..., description="User-facing display name")
    user_type: Literal["guest", "regular"] = Field(default="regular", description="Entitlement tier of the user")
