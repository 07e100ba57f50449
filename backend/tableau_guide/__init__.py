import asyncio
import os
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

__version__ = "1.0.0"

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'static')


def create_app(settings=None, knowledge=None, initializer=None):
    """Build the ASGI app.

    With no ``knowledge`` the Gemini-backed knowledge base is created from
    ``settings`` and initialized in the background once the server starts.
    Tests pass their own knowledge base (and optionally an initializer).
    """
    from .services.knowledge import KnowledgeBase, initialize_knowledge

    if knowledge is None:
        if settings is None:
            raise ValueError("settings are required when no knowledge base is provided")

        from .services.gemini import GeminiClient, GeminiFileStore
        from .services.provisioner import DocumentProvisioner

        knowledge = KnowledgeBase(GeminiClient(settings.gemini_api_key, settings.gemini_model))
        if initializer is None:
            provisioner = DocumentProvisioner(settings, GeminiFileStore(settings.gemini_api_key))

            async def initializer(kb):
                return await initialize_knowledge(kb, settings, provisioner)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if initializer is not None:
            # Serving starts now; queries use fallback mode until this finishes.
            task = asyncio.create_task(initializer(knowledge))
        yield
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="Tableau Guide", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.knowledge = knowledge

    # The widget is embedded in third-party pages
    origins = settings.cors_origins if settings is not None else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    from .mcp_server import mount_mcp
    from .routes import message_routes

    app.include_router(message_routes.router)
    mount_mcp(app, knowledge)
    app.mount('/widget', StaticFiles(directory=STATIC_DIR), name='widget')

    return app
