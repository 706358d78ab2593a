from pydantic import BaseModel, EmailStr, Field
from typing import Optional

class TeacherSignup(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)

class TeacherLogin(BaseModel):
    email: EmailStr
    password: str

class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    expires_in: int

class SignupResponse(BaseModel):
    message: str
    teacher_id: str

class TeacherProfile(BaseModel):
    id: str
    name: str
    email: str
    room_code: Optional[str] = None

    class Config:
        from_attributes = True
