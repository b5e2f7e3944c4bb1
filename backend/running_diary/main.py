"""FastAPI application entry point for the running diary backend."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from running_diary.api import clubs, events, functions, invitations, join_requests, members, ops, users
from running_diary.api.errors import install_error_handlers
from running_diary.api.middleware_request_id import RequestIdMiddleware
from running_diary.infra import postgres
from running_diary.jobs import JobScheduler, build_scheduler
from running_diary.obs import init as obs_init
from running_diary.obs.logging import get_logger
from running_diary.realtime import sockets
from running_diary.settings import settings

_LOG = get_logger("running_diary.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: JobScheduler | None = None
	if settings.jobs_enabled:
		scheduler = build_scheduler()
		scheduler.start()
		_LOG.info("background jobs started", extra={"jobs": scheduler.job_ids()})
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()


app = FastAPI(title="Running Diary API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins or "*" in allow_origins:
	allow_origins = [settings.app_url]
	if settings.is_dev():
		allow_origins += ["http://localhost:3000", "http://127.0.0.1:3000"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
sockets.register(sio)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.add_middleware(RequestIdMiddleware)

app.include_router(users.router)
app.include_router(clubs.router)
app.include_router(members.router)
app.include_router(invitations.router)
app.include_router(join_requests.router)
app.include_router(events.router)
app.include_router(functions.router)
app.include_router(ops.router)
