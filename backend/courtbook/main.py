import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courtbook.database import init_db
from courtbook.routes import clients, courts, pricing_rules, reservations, tenants
from courtbook.services.booking_errors import BookingError
from courtbook.settings import CORS_ORIGINS, LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Courtbook Reservation API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Map engine errors onto their HTTP status (404/403/409/422)"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(tenants.router, prefix="/api", tags=["tenants"])
app.include_router(courts.router, prefix="/api", tags=["courts"])
app.include_router(clients.router, prefix="/api", tags=["clients"])
app.include_router(pricing_rules.router, prefix="/api", tags=["pricing"])
app.include_router(reservations.router, prefix="/api", tags=["reservations"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Database initialized")


@app.get("/api/health")
def health():
    return {"status": "ok"}
