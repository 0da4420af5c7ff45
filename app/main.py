from fastapi import FastAPI

from api.v1 import router as v1_router
from app.config import get_settings
from app.core.logging import configure_logging
from app.core.middleware import RunContextMiddleware
from chain.chains import list_supported_chains


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Pulse Automations", version="0.1.0")
    app.add_middleware(RunContextMiddleware)
    app.include_router(v1_router)

    @app.get("/healthz")
    async def healthz():
        s = get_settings()
        return {
            "ok": True,
            "db_configured": bool(s.DATABASE_URL),
            "rpc_configured": bool(s.PULSECHAIN_RPC_URL),
            "signer_configured": bool(s.executor_private_key),
            "chain_id": s.chain_id,
            "supported_chains": list_supported_chains(),
        }

    return app


app = create_app()
