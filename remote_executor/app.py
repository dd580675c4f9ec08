# remote_executor/app.py
import argparse
import logging
import sys
from typing import Optional, Sequence

import psutil
import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .api_routes import router as api_router
from .config import GatewayConfig, ensure_base_dir, load_config
from .dispatcher import Dispatcher
from .errors import ConfigError
from .logging_setup import configure_logging
from .sandbox import Sandbox

APP_TITLE = "LLM Remote Executor"

logger = logging.getLogger("remote_executor")


def create_app(config: GatewayConfig) -> FastAPI:
    app = FastAPI(title=APP_TITLE)
    app.state.config = config
    app.state.dispatcher = Dispatcher(
        Sandbox(config.base_dir),
        config.secret_token,
        allow_shell=config.allow_shell,
    )

    # ---- Basic routes ---------------------------------------------------------
    @app.get("/")
    def root():
        return {"ok": True, "service": APP_TITLE}

    @app.get("/health")
    def health():
        try:
            du = psutil.disk_usage(str(config.base_dir))
        except OSError as e:
            return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
        return {
            "ok": True,
            "base_dir": str(config.base_dir),
            "disk": {"total": du.total, "used": du.used, "free": du.free, "percent": du.percent},
        }

    app.include_router(api_router)
    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="remote-executor", description=APP_TITLE)
    parser.add_argument("--config", help="path to config.json (default: ./config.json)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    try:
        config = load_config(args.config)
        ensure_base_dir(config)
    except ConfigError as e:
        logger.error(f"FATAL ERROR: {e}")
        sys.exit(1)

    app = create_app(config)
    logger.info(f"{APP_TITLE} is running.")
    logger.info(f"Listening on: http://{config.host}:{config.port}")
    logger.info(f"Serving files in: {config.base_dir}")
    if not config.allow_shell:
        logger.info("Shell action disabled (ALLOW_SHELL=false).")
    uvicorn.run(app, host=config.host, port=config.port, log_level=args.log_level.lower())
