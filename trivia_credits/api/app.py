import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from trivia_credits.api.error import ClientError, client_error_handler
from trivia_credits.api.routes import credits


def create_app(config) -> FastAPI:
    logging.getLogger("trivia_credits").setLevel(config.LOG_LEVEL.upper())

    app = FastAPI(
        title="Trivia Credits Service",
        description="Credit balances, game session charges and credit purchases",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClientError, client_error_handler)

    app.include_router(credits.router, prefix=config.API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
