from pydantic import BaseModel, EmailStr, Field


class RegisterIn(BaseModel):
    name: str = Field(..., description="Display name of the user", min_length=1, max_length=120)
    email: EmailStr = Field(..., description="The email of the user", max_length=255)
    # bcrypt ignores anything past 72 bytes
    password: str = Field(..., description="The password of the user", min_length=4, max_length=72)


class ResendIn(BaseModel):
    email: EmailStr = Field(..., max_length=255)


class VerifyIn(BaseModel):
    email: EmailStr = Field(..., max_length=255)
    # length/digits are checked by the service so malformed codes still cost an attempt
    code: str = Field(..., min_length=1, max_length=16)
