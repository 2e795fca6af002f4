from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    # Blank means "surprise me"; the browser and CLI send "random" instead.
    userInput: str = Field(default="", max_length=500)


class GenerateResponse(BaseModel):
    output: str


class ContactRequest(BaseModel):
    # Ends up in a mail header, so line breaks are rejected.
    name: str = Field(min_length=1, max_length=200, pattern=r"^[^\r\n]+$")
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    message: str = Field(min_length=1, max_length=5000)


class ContactResponse(BaseModel):
    status: Literal["OK"] = "OK"
