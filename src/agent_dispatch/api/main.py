"""FastAPI entrypoint for session-scoped request dispatch."""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from agent_dispatch.agent.capabilities import register_builtin_capabilities
from agent_dispatch.agent.orchestrator import Orchestrator
from agent_dispatch.agent.registry import CapabilityRegistry
from agent_dispatch.agent.session import SessionStore
from agent_dispatch.config import DispatchConfig, DispatchMode
from agent_dispatch.errors import NotFoundError
from agent_dispatch.llm import create_chat_model
from agent_dispatch.types import DispatchResponse, Outcome, Request


class DispatchRequest(BaseModel):
    text: str = Field(min_length=1)
    correlation_id: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0.0)


def _outcome_payload(outcome: Outcome) -> dict[str, Any]:
    payload = asdict(outcome)
    payload["status"] = outcome.status.value
    payload["success"] = outcome.success
    payload["timestamp"] = outcome.timestamp.isoformat()
    return payload


def _response_payload(response: DispatchResponse) -> dict[str, Any]:
    return {
        "correlation_id": response.correlation_id,
        "text": response.text,
        "matched": response.matched,
        "latency_ms": response.latency_ms,
        "outcomes": [_outcome_payload(outcome) for outcome in response.outcomes],
    }


def create_app(
    registry: CapabilityRegistry | None = None,
    config: DispatchConfig | None = None,
) -> FastAPI:
    """Build the API around a registry; defaults to the built-in capabilities."""

    llm = None
    if registry is None:
        llm = create_chat_model()
        registry = CapabilityRegistry()
        register_builtin_capabilities(registry, llm=llm)
    if config is None:
        config = DispatchConfig(
            dispatch_mode=DispatchMode(os.getenv("DISPATCH_MODE", "sequential"))
        )
    sessions = SessionStore(registry, config)

    app = FastAPI(title="Agent Dispatch", version="0.1.0")
    app.state.sessions = sessions

    def _session(session_id: str) -> Orchestrator:
        try:
            return sessions.get(session_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "llm_configured": llm is not None,
            "dispatch_mode": config.dispatch_mode.value,
            "capability_count": len(registry),
            "session_count": len(sessions),
        }

    @app.get("/capabilities")
    def capabilities() -> dict[str, Any]:
        return {
            "items": [
                {
                    "name": capability.name,
                    "description": capability.description,
                    "tags": list(capability.tags),
                }
                for capability in registry.all()
            ]
        }

    @app.post("/sessions/{session_id}/requests")
    async def dispatch(session_id: str, body: DispatchRequest) -> dict[str, Any]:
        orchestrator = sessions.get_or_create(session_id)
        kwargs: dict[str, Any] = {"text": body.text, "timeout_seconds": body.timeout_seconds}
        if body.correlation_id:
            kwargs["correlation_id"] = body.correlation_id
        response = await orchestrator.handle(Request(**kwargs))
        return _response_payload(response)

    @app.get("/sessions/{session_id}/history")
    def history(session_id: str) -> dict[str, Any]:
        orchestrator = _session(session_id)
        return {
            "total_size": orchestrator.history.total_size(),
            "budget": orchestrator.history.budget,
            "items": [
                {"role": turn.role.value, "text": turn.text, "size": turn.size}
                for turn in orchestrator.history.snapshot()
            ],
        }

    @app.get("/sessions/{session_id}/metrics")
    def metrics(session_id: str) -> dict[str, Any]:
        return _session(session_id).metrics.summary()

    @app.post("/sessions/{session_id}/metrics/reset")
    def reset_metrics(session_id: str) -> dict[str, Any]:
        orchestrator = _session(session_id)
        orchestrator.metrics.reset()
        return orchestrator.metrics.summary()

    @app.post("/sessions/{session_id}/cancel")
    async def cancel(session_id: str) -> dict[str, Any]:
        orchestrator = _session(session_id)
        orchestrator.cancel()
        return {"state": orchestrator.state.value}

    @app.delete("/sessions/{session_id}")
    async def drop(session_id: str) -> dict[str, Any]:
        try:
            sessions.drop(session_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"dropped": session_id}

    return app


app = create_app()
