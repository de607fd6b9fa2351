"""Shared Pydantic models for API routers.

Usage in routers:
    from api.models import ChatRequest, TaskCreateRequest, TaskUpdateRequest
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Chat Models
# =============================================================================

class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    session_id: Optional[str] = Field(None, alias="sessionId")


# =============================================================================
# Task Models
# =============================================================================

class TaskCreateRequest(BaseModel):
    """Request model for creating tasks."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: Optional[str] = None
    priority: Literal["low", "medium", "high"] = "medium"
    due_date: Optional[str] = Field(
        None,
        alias="dueDate",
        description="ISO timestamp or natural language (e.g. 'tomorrow at 5 PM').",
    )


class TaskUpdateRequest(BaseModel):
    """Request model for updating tasks. Only provided fields change."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    status: Optional[Literal["todo", "in-progress", "completed"]] = None
    due_date: Optional[str] = Field(None, alias="dueDate")
