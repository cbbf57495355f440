# src/taskos/api/schemas.py
from __future__ import annotations

"""Pydantic request schemas for the public API.

Only HTTP input validation lives here; domain records serialize themselves
with to_json().
"""

from pydantic import BaseModel, Field


class ContentDecryptRequest(BaseModel):
    blob_id: str = Field(..., description="Walrus blob id of the encrypted content")
    task_id: str = Field(..., description="Task object id the content belongs to")
    creator: str = Field(..., description="Address of the task creator")

    model_config = {"extra": "ignore"}
