from __future__ import annotations

import asyncio
import webbrowser
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from auth.errors import BrowserLaunchError
from auth.login_flow import LoginFlow
from auth.notifier import ResultNotifier
from spotlight.constants import APP_VERSION, CALLBACK_HOST, LOGGER
from spotlight.env import (
    callback_port,
    load_client_config,
    load_env,
    login_on_start,
    setup_logging,
    token_timeout,
    validate_env,
)
from spotlight.http import create_token_client


async def health(request: Request) -> JSONResponse:
    login_flow = request.app.state.login_flow
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "login_state": login_flow.session_store.current_state().value,
        }
    )


def create_app(
    *,
    notifier: ResultNotifier | None = None,
    open_browser_fn=webbrowser.open,
) -> Starlette:
    load_env()
    debug_enabled = setup_logging()
    validate_env()

    http_client = create_token_client(timeout=token_timeout(), debug_enabled=debug_enabled)
    login_flow = LoginFlow(
        client_config=load_client_config(),
        notifier=notifier,
        http_client=http_client,
        open_browser_fn=open_browser_fn,
    )

    @asynccontextmanager
    async def lifespan(app: Starlette):
        del app
        try:
            yield
        finally:
            await http_client.aclose()

    app = Starlette(
        routes=[*login_flow.routes(), Route("/health", health, methods=["GET"])],
        lifespan=lifespan,
    )
    app.state.login_flow = login_flow
    return app


async def serve(app: Starlette, *, port: int, start_login: bool) -> None:
    server = uvicorn.Server(uvicorn.Config(app, host=CALLBACK_HOST, port=port))
    serve_task = asyncio.create_task(server.serve())

    if start_login:
        while not server.started and not serve_task.done():
            await asyncio.sleep(0.05)
        if server.started:
            LOGGER.info("OAuth listener ready on %s:%s", CALLBACK_HOST, port)
            try:
                await app.state.login_flow.start_login()
            except BrowserLaunchError as error:
                LOGGER.warning("Login not started: %s", error)

    await serve_task


def main() -> None:
    app = create_app()
    asyncio.run(serve(app, port=callback_port(), start_login=login_on_start()))


if __name__ == "__main__":
    main()
