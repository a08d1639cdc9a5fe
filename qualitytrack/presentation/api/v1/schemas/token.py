from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """JWT token payload schema"""

    sub: int = Field(..., description="User ID (subject)")
    exp: int = Field(..., description="Token expiration timestamp")

    class Config:
        json_schema_extra = {"example": {"sub": 42, "exp": 1735689600}}
