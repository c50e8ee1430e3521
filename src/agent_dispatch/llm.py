"""Chat model construction from environment variables."""

from __future__ import annotations

import logging
import os
from typing import Any

from agent_dispatch.config import ChatModelConfig

logger = logging.getLogger(__name__)


def create_chat_model(config: ChatModelConfig | None = None) -> Any:
    """Return a LangChain chat model, or None when no API key is configured."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.info("OPENAI_API_KEY not set; using deterministic capabilities")
        return None

    from langchain_openai import ChatOpenAI

    config = config or ChatModelConfig(model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    return ChatOpenAI(model=config.model, temperature=config.temperature)
