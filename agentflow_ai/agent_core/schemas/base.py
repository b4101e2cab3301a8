"""Pydantic base schema utilities for agentflow models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all SDK schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name, so
      the camelCase wire names used by flow documents and the snake_case Python
      names are both accepted.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
