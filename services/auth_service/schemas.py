from pydantic import BaseModel, EmailStr, field_validator, Field

# bcrypt only looks at the first 72 bytes and refuses longer input
MAX_PASSWORD_BYTES = 72


def validate_password(pw: str) -> str:
    if pw is None or pw == "":
        raise ValueError("Password is required")
    if len(pw.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password too long (max {MAX_PASSWORD_BYTES} bytes)")
    return pw


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_ok(cls, v: str) -> str:
        return validate_password(v)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class SessionOut(BaseModel):
    id: int
    email: EmailStr
    is_admin: bool
    session_id: str
