"""
Base database models and utilities.

This module provides the foundational database components used across
all entities in the centralized database layer using SQLModel.
"""

from __future__ import annotations

from uuid import uuid4

from pydantic import ConfigDict
from sqlmodel import SQLModel


def new_id() -> str:
    """Generate a primary key value for a new row."""
    return uuid4().hex


class Base(SQLModel):
    """Base class for all SQLModel entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)
