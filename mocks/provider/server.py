"""
Mock OAuth2 identity provider imitating the Discord API endpoints used by
the Identity Bridge (token exchange, profile, memberships).
"""

from typing import Dict, Any, Optional

from fastapi import APIRouter, FastAPI, Form, Header, HTTPException
from fastapi.responses import RedirectResponse

from shared.logging import get_logger


class MockProviderServer:
    """Mock identity provider implementation."""

    def __init__(self, port: int = 8090, client_id: str = "identity-bridge", client_secret: str = "s3cret"):
        self.port = port
        self.logger = get_logger("mock.provider")
        self.app = FastAPI(title="Mock Identity Provider", version="1.0.0")
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = "identify email guilds"

        # Mock users; "guilds" is None where the membership call must fail
        self.users: Dict[str, Dict[str, Any]] = {
            "100000000000000001": {
                "username": "john.doe",
                "discriminator": "0",
                "global_name": "John Doe",
                "email": "john.doe@example.com",
                "verified": True,
                "guilds": [
                    {"id": "200000000000000001", "name": "Analysts", "owner": False, "permissions": "104324673"},
                    {"id": "200000000000000002", "name": "Operators", "owner": True, "permissions": "2147483647"},
                ],
            },
            "100000000000000002": {
                "username": "jane.smith",
                "discriminator": "4821",
                "global_name": None,
                "email": "jane.smith@example.com",
                "verified": False,
                "guilds": [],
            },
            "100000000000000003": {
                "username": "sam.lee",
                "discriminator": "0",
                "global_name": "Sam",
                "email": "sam.lee@example.com",
                "verified": True,
                "guilds": None,
            },
        }

        self._setup_routes()

    @staticmethod
    def code_for(user_id: str) -> str:
        """Authorization code the mock accepts for a user."""
        return f"code-{user_id}"

    def _setup_routes(self):
        """Set up mock provider routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "mock-provider",
                "message": "Mock identity provider for the Identity Bridge",
                "version": "1.0.0"
            }

        @self.app.get("/oauth2/authorize")
        async def authorize(redirect_uri: str, state: str = "", user_id: str = "100000000000000001"):
            """Skip the consent screen and send the code straight back."""
            return RedirectResponse(f"{redirect_uri}?code={self.code_for(user_id)}&state={state}")

        api = APIRouter(prefix="/api/v10")

        @api.post("/oauth2/token")
        async def token_endpoint(
            client_id: str = Form(...),
            client_secret: str = Form(...),
            grant_type: str = Form(...),
            code: str = Form(...),
            code_verifier: str = Form(""),
            redirect_uri: str = Form(""),
            scope: str = Form(""),
        ):
            """Authorization code exchange."""
            if client_id != self.client_id or client_secret != self.client_secret:
                raise HTTPException(status_code=401, detail="invalid_client")
            if grant_type != "authorization_code":
                raise HTTPException(status_code=400, detail="unsupported_grant_type")
            if not code_verifier:
                raise HTTPException(status_code=400, detail="invalid_request")

            user_id = code[len("code-"):] if code.startswith("code-") else None
            if user_id not in self.users:
                raise HTTPException(status_code=400, detail="invalid_grant")

            self.logger.info("Issued mock access token", user_id=user_id)
            return {
                "token_type": "Bearer",
                "access_token": f"access-{user_id}",
                "expires_in": 604800,
                "refresh_token": f"refresh-{user_id}",
                "scope": scope or self.scope,
            }

        @api.get("/users/@me")
        async def current_user(authorization: Optional[str] = Header(None)):
            """Profile of the token's user."""
            user_id = self._authenticate(authorization)
            user = self.users[user_id]
            return {
                "id": user_id,
                "username": user["username"],
                "discriminator": user["discriminator"],
                "global_name": user["global_name"],
                "email": user["email"],
                "verified": user["verified"],
            }

        @api.get("/users/@me/guilds")
        async def current_user_guilds(authorization: Optional[str] = Header(None)):
            """Guilds of the token's user."""
            user_id = self._authenticate(authorization)
            guilds = self.users[user_id]["guilds"]
            if guilds is None:
                raise HTTPException(status_code=403, detail="Missing Access")
            return guilds

        self.app.include_router(api)

    def _authenticate(self, authorization: Optional[str]) -> str:
        if not authorization or not authorization.startswith("Bearer access-"):
            raise HTTPException(status_code=401, detail="401: Unauthorized")

        user_id = authorization[len("Bearer access-"):]
        if user_id not in self.users:
            raise HTTPException(status_code=401, detail="401: Unauthorized")
        return user_id


def create_app():
    """Create mock provider application."""
    server = MockProviderServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
