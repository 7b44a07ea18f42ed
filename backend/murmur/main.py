"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from murmur.api import feeds, ops, search
from murmur.api.errors import install_error_handlers
from murmur.infra import postgres
from murmur.obs import init as obs_init
from murmur.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.search_backend.lower() != "memory":
		await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Murmur Feed & Search", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

app.include_router(search.router, tags=["search"])
app.include_router(feeds.router, tags=["feeds"])
app.include_router(ops.router, tags=["ops"])
