"""Reference Moderation Service — in-process FastAPI stand-in for the remote endpoints.

Invariants:
    - Serves the four endpoints the client consumes (/v1/policy, /checkText,
      /v1/moderate/image, /v1/events) with the demo deployment's values
    - Every request is recorded (method, path, headers, body) before any delay
    - Per-path status overrides and delays make failure modes deterministic

Design Decisions:
    - Mounted through httpx.ASGITransport: real HTTP semantics, no sockets
    - Image decision is deterministic (configured), unlike the demo's random score
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

BASE_URL = "http://watchtower.test"


def demo_policy() -> dict[str, Any]:
    return {
        "blockToxicity": True,
        "blockSexual": True,
        "blockNsfwImages": True,
        "toxicityThreshold": 0.85,
        "sexualThreshold": 0.9,
        "nsfwThreshold": 0.85,
    }


@dataclass
class RecordedCall:
    method: str
    path: str
    headers: dict[str, str]
    body: bytes


@dataclass
class ServiceState:
    policy: dict[str, Any] = field(default_factory=demo_policy)
    text_response: Any = field(default_factory=lambda: {"isTextPermitted": True})
    image_response: Any = field(default_factory=lambda: {
        "decision": "ALLOW", "nsfwScore": 0.1, "reasons": [],
    })
    status: dict[str, int] = field(default_factory=dict)
    delay_s: dict[str, float] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)

    def calls_to(self, path: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.path == path]


def create_reference_service(state: ServiceState) -> FastAPI:
    app = FastAPI(title="Watchtower reference service")

    async def _serve(request: Request, payload: Any):
        path = request.url.path
        state.calls.append(RecordedCall(
            request.method, path, dict(request.headers), await request.body(),
        ))
        delay = state.delay_s.get(path)
        if delay:
            await asyncio.sleep(delay)
        status = state.status.get(path, 200)
        if status >= 300:
            return JSONResponse(status_code=status, content={"error": "unavailable"})
        return JSONResponse(content=payload)

    @app.get("/v1/policy")
    async def policy(request: Request):
        return await _serve(request, state.policy)

    @app.post("/checkText")
    async def check_text(request: Request):
        return await _serve(request, state.text_response)

    @app.post("/v1/moderate/image")
    async def moderate_image(request: Request):
        return await _serve(request, state.image_response)

    @app.post("/v1/events")
    async def events(request: Request):
        return await _serve(request, {"ok": True})

    return app
