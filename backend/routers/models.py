"""
Pydantic models for API requests.

Auth fields are optional at the schema level so missing values get the
service's own 400 messages instead of a generic 422.
"""

from typing import Optional

from pydantic import BaseModel

from services.chat_orchestrator import ResponseMode


class ChatRequest(BaseModel):
    message: Optional[str] = ""
    mode: ResponseMode = ResponseMode.KNOWLEDGE_BASE


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
