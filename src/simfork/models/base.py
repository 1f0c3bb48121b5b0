# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for simfork."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class SimforkBaseModel(BaseModel):
    """Base model with shared config for simfork schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenModel(BaseModel):
    """Immutable model for values shared across threads."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )
