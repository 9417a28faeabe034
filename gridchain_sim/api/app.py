from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import ConfigurationError
from .routes import ledger_router, simulation_router


def create_app() -> FastAPI:
    """
    Instantiate the FastAPI application and register routers.

    Registers the domain routers:
    - simulation: driver state, ticks, ticker control, reset, configuration
    - ledger: chain listing, audit, manual injection, tamper

    Returns:
        FastAPI: Configured FastAPI application instance ready to serve.

    Example:
        ```python
        app = create_app()
        uvicorn.run(app, host="0.0.0.0", port=8000)
        ```
    """
    app = FastAPI(
        title="GridChain Sim API",
        version="0.1.0",
        description="Microgrid simulation recorded in a tamper-evident hash chain.",
    )

    from fastapi.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        # raised while building the application service, outside any route
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    app.include_router(simulation_router)
    app.include_router(ledger_router)

    return app


app = create_app()
