from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from app.core.config import settings, logger
from app.core.database import Base, engine
from app.core.errors import LibraryError
from app.models import models  # noqa: F401  registers tables on Base
from app.api import auth, routes

Base.metadata.create_all(bind=engine)
app = FastAPI(title="E-Library Lending Service")
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret,
                   max_age=settings.session_max_age, same_site="lax")
app.include_router(auth.router)
app.include_router(routes.router)

@app.exception_handler(LibraryError)
def library_error_handler(request: Request, exc: LibraryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code,
                        content={"detail": exc.message, "code": exc.code})

@app.get("/health")
def health():
    return {"status": "ok", "time": datetime.utcnow().isoformat()}
