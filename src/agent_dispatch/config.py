"""Configuration models for the dispatch core."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DispatchMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class DispatchConfig(BaseModel):
    """Configures retries, history budget and fan-out policy of an orchestrator."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, gt=0.0)
    history_budget: int = Field(default=4000, gt=0)
    dispatch_mode: DispatchMode = DispatchMode.SEQUENTIAL
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class ChatModelConfig(BaseModel):
    """Configures the optional chat model backing LLM capabilities."""

    model: str = Field(default="gpt-4o-mini", min_length=1)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
