from pydantic import BaseModel, Field


class OtpOut(BaseModel):
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human readable outcome, safe to display")
    remaining_seconds: int | None = Field(
        None, description="Seconds before another code may be requested"
    )
    attempts_remaining: int | None = Field(
        None, description="Wrong guesses left for the current code"
    )
