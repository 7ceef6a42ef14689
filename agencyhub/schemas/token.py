"""
Pydantic schemas for authentication, tokens and access decisions
"""

from pydantic import BaseModel
from typing import Optional


class TokenResponse(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    uid: str


class AccessDecisionResponse(BaseModel):
    """Access guard decision for a permission/module pair"""
    outcome: str
    reason: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    redirect_to: Optional[str] = None
