"""
Bifrost - sample application

Demonstrates routes, middleware, virtual elements, static fallback and the
live reload socket.
Run with: uv run uvicorn sample:app --reload
"""


import logging
import time

import jwt

from bifrost import (
    BearerAuthMiddleware,
    Bifrost,
    JSONResponse,
    Request,
    ResponseDraft,
    RouterConfig,
    h,
)
from bifrost.exceptions import BadRequest

SECRET_KEY = "{YOUR_SECRET_HERE}"

logger = logging.getLogger("bifrost.sample")

app: Bifrost = Bifrost(
    RouterConfig(
        debug=True,
        public_dir="public",
        spa=True,
        livereload=True,
    )
)


# =============================================================================
# Middleware
# =============================================================================


def powered_by(request: Request, response: ResponseDraft) -> None:
    response.set_header("X-Powered-By", "Bifrost")


app.use(powered_by)
app.use(
    BearerAuthMiddleware(
        secret_key=SECRET_KEY,
        required=False,
    )
)


# =============================================================================
# Lifespan Events
# =============================================================================


@app.on_startup
async def startup() -> None:
    logger.info("Bifrost is starting up...")


@app.on_shutdown
async def shutdown() -> None:
    logger.info("Bifrost is shutting down...")


# =============================================================================
# Routes
# =============================================================================


@app.get("/api")
async def hello_world(request: Request) -> dict:
    """Returns a JSON greeting."""
    return {"message": "Hello from Bifrost", "version": "0.1.0"}


@app.post("/api/login")
async def login(request: Request) -> JSONResponse:
    data = request.payload or {}
    if data.get("username") == "admin" and data.get("password") == "password":
        claims = {
            "sub": "1",
            "username": data["username"],
            "iat": int(time.time()),
            "exp": int(time.time()) + 3600,     # expires in 1 hour
        }
        return JSONResponse({"token": jwt.encode(claims, SECRET_KEY, algorithm="HS256")})
    return JSONResponse({"error": "Invalid credentials"}, status_code=401)


@app.get("/api/me")
async def me(request: Request) -> dict:
    claims = request.state.get("claims")
    return {"authenticated": claims is not None, "claims": claims}


@app.get("/api/users/:id")
async def get_user(request: Request) -> dict:
    """Path parameters arrive as strings in ``request.params``."""
    user_id = request.params["id"]
    return {"id": user_id, "username": f"user_{user_id}"}


@app.get("/hello/:name")
async def hello_page(request: Request):
    """Virtual elements are rendered to HTML."""
    return h("main", {"id": "app"},
             h("h1", None, f"Hello, {request.params['name']}!"),
             h("p", {"class": "lead"}, "Rendered by Bifrost"))


@app.get("/api/error")
async def trigger_error(request: Request) -> dict:
    raise BadRequest("This is a demonstration error")


# =============================================================================
# Main Entry Point
# =============================================================================


def main() -> None:
    """Run the sample application."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    logger.info("""
    Bifrost Router
    ==============

    Available endpoints:
    - GET  /api            - Hello World
    - POST /api/login      - Issue a bearer token
    - GET  /api/me         - Claims of the bearer token, if any
    - GET  /api/users/:id  - Path parameters
    - GET  /hello/:name    - Rendered virtual elements
    - GET  /api/error      - Error handling demo
    - GET  /*              - Files from ./public (SPA fallback)
    """)

    app.run(log_level="info")


if __name__ == "__main__":
    main()
