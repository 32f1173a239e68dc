"""
Главный файл FastAPI приложения
GroomBook - онлайн-запись в груминг-салоны
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .admin import setup_admin
from .config import get_settings
from .database import engine, init_db
from .errors import BookingError
from .routes.bookings import router as bookings_router
from .routes.customers import router as customers_router
from .routes.shops import router as shops_router

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Создание таблиц при старте
init_db()

# FastAPI приложение
app = FastAPI(
    title="GroomBook API",
    description="API для онлайн-записи в груминг-салоны",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else [settings.SITE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session Middleware (для админки)
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Доменные ошибки -> JSON {"detail": ..., "field": ...}"""
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Подключение роутеров
app.include_router(customers_router)
app.include_router(shops_router)
app.include_router(bookings_router)

# Админ-панель
setup_admin(app, engine)


@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
