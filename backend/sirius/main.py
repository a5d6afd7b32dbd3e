from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sirius.config import settings
from sirius.middleware.exceptions import register_exception_handlers
from sirius.routers import health, wizard_types, wizards
from sirius.services.scheduler import lifespan

app = FastAPI(
    title="Sirius",
    description="Wizard execution service: data feeds and reports",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(wizard_types.router, prefix="/api/wizard-types", tags=["wizard-types"])
app.include_router(wizards.router, prefix="/api/wizards", tags=["wizards"])
