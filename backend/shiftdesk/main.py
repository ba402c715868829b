import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy import select
from shiftdesk.config import get_settings
from shiftdesk.database import engine, Base, async_session
from shiftdesk.exceptions import ShiftDeskError
from shiftdesk.routers import availability, dashboard, doctor, realtime, roster, schedule, swaps
from shiftdesk.routers import auth as auth_router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_demo_data():
    """Create a demo hospital with an admin and two doctors if missing. Idempotent."""
    from shiftdesk.auth import hash_password
    from shiftdesk.models import Hospital, HospitalMembership, User

    demo_users = [
        {"email": "admin@shiftdesk.local", "full_name": "Admin", "role": "admin"},
        {"email": "ana.souza@shiftdesk.local", "full_name": "Dr. Ana Souza", "role": "doctor"},
        {"email": "bruno.lima@shiftdesk.local", "full_name": "Dr. Bruno Lima", "role": "doctor"},
    ]

    async with async_session() as session:
        hospital = await session.scalar(select(Hospital).where(Hospital.name == "Demo Hospital"))
        if not hospital:
            hospital = Hospital(name="Demo Hospital")
            session.add(hospital)
            await session.flush()

        for u in demo_users:
            user = await session.scalar(select(User).where(User.email == u["email"]))
            if not user:
                user = User(email=u["email"], full_name=u["full_name"], password_hash=hash_password("shiftdesk"))
                session.add(user)
                await session.flush()
                session.add(HospitalMembership(hospital_id=hospital.id, user_id=user.id, role=u["role"]))
        await session.commit()
        logger.info("Demo data ready in hospital %s", hospital.id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables then optionally seed demo data
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_demo_data:
        await seed_demo_data()
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="ShiftDesk",
    description="Hospital shift scheduling: roster, calendar, availability and shift swaps",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Schedules change under the user's feet; never let the browser cache API responses."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


app.add_middleware(NoCacheMiddleware)


@app.exception_handler(ShiftDeskError)
async def shiftdesk_error_handler(request: Request, exc: ShiftDeskError):
    if exc.status_code >= 409:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    body = {"detail": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
app.include_router(roster.router, prefix="/api/roster", tags=["Roster"])
app.include_router(schedule.router, prefix="/api/schedule", tags=["Schedule"])
app.include_router(availability.router, prefix="/api/availability", tags=["Availability"])
app.include_router(swaps.router, prefix="/api/swaps", tags=["Swaps"])
app.include_router(doctor.router, prefix="/api/me", tags=["Doctor"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(realtime.router, prefix="/api/realtime", tags=["Realtime"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "shiftdesk"}
