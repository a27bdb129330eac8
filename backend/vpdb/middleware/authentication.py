"""Authentication middleware.

Resolves the credential of every request once, before routing, and stores
the outcome on ``request.state.auth``. Rejecting a request is left to the
route dependencies, a public route must still work with a bad token.
"""
from typing import Callable, Optional

from fastapi import Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from vpdb import database
from vpdb.middleware.monitoring import record_auth_failure
from vpdb.utils.auth import AuthState, authenticate_request
from vpdb.utils.logger import logger


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Authenticate requests and add ``X-User-Id`` / ``X-Token-Refresh`` to responses"""

    def __init__(self, app, session_factory: Optional[Callable[[], Session]] = None):
        super().__init__(app)
        self.session_factory = session_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        state = await run_in_threadpool(self._authenticate, request)
        request.state.auth = state

        if state.error is not None and state.credentials_provided:
            record_auth_failure(state.error.status_code)
            logger.info(
                f"Authentication failed: {state.error.detail}",
                extra={"path": request.url.path, "method": request.method, "status": state.error.status_code},
            )

        response = await call_next(request)
        for name, value in state.response_headers.items():
            response.headers[name] = value
        return response

    def _authenticate(self, request: Request) -> AuthState:
        db = (self.session_factory or database.SessionLocal)()
        try:
            return authenticate_request(db, request)
        finally:
            db.close()
