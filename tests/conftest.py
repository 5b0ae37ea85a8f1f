from __future__ import annotations

import base64
import uuid
from typing import Any

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from zkauth.common.config import Config
from zkauth.infrastructure.issuer_gateway import IssuerGateway

START_TIME = 1_700_000_000


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeIssuer:
    """In-process stand-in for the issuer node HTTP API."""

    def __init__(self, user: str, password: str):
        self.claims: dict[str, list[dict[str, Any]]] = {}
        self.identities: list[str] = []
        self.published: list[str] = []
        self.requests: list[tuple[str, str]] = []
        self.fail_paths: set[str] = set()
        self._auth = "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()
        self.app = self._build_app()

    def _guard(self, request: Request) -> None:
        self.requests.append((request.method, request.url.path))
        if request.headers.get("authorization") != self._auth:
            raise HTTPException(status_code=401, detail="unauthorized")
        if request.url.path in self.fail_paths:
            raise HTTPException(status_code=500, detail="issuer exploded")

    def _build_app(self) -> FastAPI:  # noqa: C901
        app = FastAPI()

        @app.exception_handler(HTTPException)
        async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
            return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

        @app.get("/status")
        def status(request: Request) -> dict[str, Any]:
            self._guard(request)
            return {"status": "ok"}

        @app.post("/v1/identities")
        async def create_identity(request: Request) -> dict[str, Any]:
            self._guard(request)
            body = await request.json()
            did = f"did:iden3:polygon:amoy:x{len(self.identities) + 1}"
            self.identities.append(did)
            return {"identifier": did, "state": {"status": "confirmed"}, "meta": body}

        @app.get("/v1/identities")
        def list_identities(request: Request) -> list[str]:
            self._guard(request)
            return self.identities

        @app.post("/v1/verification")
        async def verify(request: Request) -> dict[str, Any]:
            self._guard(request)
            body = await request.json()
            return {"verified": bool(body.get("proof")) and bool(body.get("publicSignals"))}

        @app.get("/v1/credentials/{credential_id}")
        def get_credential(credential_id: str, request: Request) -> dict[str, Any]:
            self._guard(request)
            for claims in self.claims.values():
                for claim in claims:
                    if claim["id"] == credential_id:
                        return claim
            raise HTTPException(status_code=404, detail="credential not found")

        @app.post("/v1/{did}/claims")
        async def create_claim(did: str, request: Request) -> dict[str, Any]:
            self._guard(request)
            body = await request.json()
            claim = {"id": str(uuid.uuid4()), **body}
            self.claims.setdefault(did, []).append(claim)
            return {"id": claim["id"]}

        @app.get("/v1/{did}/claims")
        def get_claims(did: str, request: Request) -> list[dict[str, Any]]:
            self._guard(request)
            return self.claims.get(did, [])

        @app.get("/v1/{did}/claims/{claim_id}/qrcode")
        def get_claim_qr(did: str, claim_id: str, request: Request) -> dict[str, Any]:
            self._guard(request)
            if not any(c["id"] == claim_id for c in self.claims.get(did, [])):
                raise HTTPException(status_code=404, detail="qr not found")
            return {"body": {"credentials": [{"id": claim_id}]}, "from": did}

        @app.post("/v1/{did}/state/publish")
        def publish_state(did: str, request: Request) -> dict[str, Any]:
            self._guard(request)
            self.published.append(did)
            return {"txID": "0x" + "ab" * 32}

        return app


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path: Any, monkeypatch: Any) -> Config:
    """Config with instant proof phases and data under tmp_path."""
    monkeypatch.setenv("ZKAUTH_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("ZKAUTH_PROOF_PHASE_DELAY", "0")
    monkeypatch.delenv("ZKAUTH_ISSUER_MODE", raising=False)
    monkeypatch.delenv("ZKAUTH_REQUIRED_CHAIN_ID", raising=False)
    return Config()


@pytest.fixture
def fake_issuer(config: Config) -> FakeIssuer:
    return FakeIssuer(config.ISSUER_AUTH_USER, config.ISSUER_AUTH_PASSWORD)


@pytest.fixture
def gateway(config: Config, fake_issuer: FakeIssuer, monkeypatch: Any) -> IssuerGateway:
    """Gateway whose HTTP session is routed into the fake issuer app."""
    gateway = IssuerGateway(config)
    client = TestClient(fake_issuer.app)
    base = config.ISSUER_URL.rstrip("/")

    def request(method: str, url: str, json: Any = None, timeout: Any = None) -> Any:
        return client.request(
            method, url.removeprefix(base), json=json, auth=gateway.session.auth
        )

    monkeypatch.setattr(gateway.session, "request", request)
    return gateway
