from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import Base, engine
from errors import Internal, ServiceError
from routes import users, follows, channels, messages, presence
from services.presence import InMemoryPresence
from utils.logger import setup_api_logger

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Murmur API (Profiles, Follows, Channels, Messages)")
app.state.presence = InMemoryPresence()

# setup file logger for API failures
api_logger = setup_api_logger()


async def _body_text(request: Request) -> str:
    try:
        body = await request.body()
    except Exception:
        body = b""
    return body.decode('utf-8', errors='replace')


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    api_logger.warning("%s on %s %s | status=%s | body=%s | message=%s",
                       type(exc).__name__, request.method, request.url.path, exc.status_code,
                       await _body_text(request), exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    api_logger.error("Database error on %s %s | body=%s | error=%s",
                     request.method, request.url.path, await _body_text(request), str(exc),
                     exc_info=exc)
    error = Internal()
    return JSONResponse(status_code=error.status_code, content={"message": error.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    api_logger.warning("Invalid request on %s %s | %s", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content={"message": details or "Invalid input"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    api_logger.warning("HTTPException on %s %s | status=%s | body=%s | detail=%s",
                       request.method, request.url.path, exc.status_code,
                       await _body_text(request), str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    api_logger.error("Unhandled exception on %s %s | body=%s | error=%s",
                     request.method, request.url.path, await _body_text(request), str(exc),
                     exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(users.router)
app.include_router(follows.router)
app.include_router(channels.router)
app.include_router(messages.router)
app.include_router(presence.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
