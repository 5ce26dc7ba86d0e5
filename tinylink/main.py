import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from tinylink import __version__, crud, database, models, qr_utils, schemas
from tinylink.exceptions import LinkError, LinkNotFoundError
from tinylink.link_utils import RESERVED_CODES, is_valid_code

load_dotenv(Path(__file__).parent.parent / ".env")

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")

# --- Logging ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("tinylink")

# --- DB tables ---
models.Base.metadata.create_all(bind=database.engine)

app = FastAPI(
    title="TinyLink",
    description="Shorten URLs, redirect visitors and count clicks.",
    version=__version__,
)

# --- CORS (allow frontend dev servers, etc.) ---
origins = ["*"] if ENVIRONMENT == "dev" else [
    os.getenv("PUBLIC_BASE_URL", "http://localhost:8000"),
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error mapping ---
@app.exception_handler(LinkError)
async def link_error_handler(request: Request, exc: LinkError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# A body that is not a JSON object carries no URL
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": crud.URL_REQUIRED})

# ---- Serve frontend (same origin) ----
FRONTEND_DIR = Path(__file__).parent / "frontend"
app.mount("/static", StaticFiles(directory=FRONTEND_DIR), name="static")

def public_base_url(request: Request) -> str:
    return os.getenv("PUBLIC_BASE_URL") or str(request.base_url).rstrip("/")

@app.get("/", include_in_schema=False)
def serve_dashboard():
    return FileResponse(FRONTEND_DIR / "index.html")

@app.get("/code/{code}", include_in_schema=False)
def serve_stats(code: str, db=Depends(database.get_db)):
    if not crud.get_link(db, code):
        raise LinkNotFoundError("Link not found")
    return FileResponse(FRONTEND_DIR / "stats.html")

@app.get("/healthz", include_in_schema=False)
def serve_health():
    return FileResponse(FRONTEND_DIR / "healthz.html")

# Small config for frontend to know public base URL
@app.get("/config", include_in_schema=False)
def get_config(request: Request):
    return {"public_base_url": public_base_url(request)}

# ---------- API ----------
@app.get("/api/healthz", response_model=schemas.HealthOut)
def health(response: Response, db=Depends(database.get_db)):
    try:
        crud.ping(db)
        ok = True
    except Exception:
        logger.warning("Health check failed", exc_info=True)
        response.status_code = 500
        ok = False
    return {
        "ok": ok,
        "status": "healthy" if ok else "unhealthy",
        "database": "connected" if ok else "not connected",
        "timestamp": datetime.now(timezone.utc),
        "version": __version__,
    }

@app.post("/api/links", response_model=schemas.LinkOut, status_code=201)
def create_link(link_in: schemas.LinkCreate, db=Depends(database.get_db)):
    link = crud.create_link(db, link_in.url, link_in.code)
    logger.info("Created link %s -> %s", link.code, link.url)
    return link

@app.get("/api/links", response_model=list[schemas.LinkOut])
def list_links(db=Depends(database.get_db)):
    return crud.get_links(db)

@app.get("/api/links/{code}", response_model=schemas.LinkOut)
def get_link(code: str, db=Depends(database.get_db)):
    link = crud.get_link(db, code)
    if not link:
        raise LinkNotFoundError("Link not found")
    return link

@app.delete("/api/links/{code}", status_code=204)
def delete_link(code: str, db=Depends(database.get_db)):
    if not crud.delete_link(db, code):
        raise LinkNotFoundError("Link not found")
    logger.info("Deleted link %s", code)
    return Response(status_code=204)

@app.get("/api/links/{code}/qr", response_model=schemas.QROut)
def qr_code(code: str, request: Request, db=Depends(database.get_db)):
    link = crud.get_link(db, code)
    if not link:
        raise LinkNotFoundError("Link not found")
    url = qr_utils.short_url(public_base_url(request), link.code)
    return {"qr_base64": qr_utils.generate_qr_base64(url)}

# Redirect /{code}; never permanent so every visit reaches the counter
@app.get("/{code}", include_in_schema=False)
def redirect_code(code: str, db=Depends(database.get_db)):
    if code in RESERVED_CODES or not is_valid_code(code):
        raise LinkNotFoundError("Not found")
    target = crud.record_click(db, code)
    if target is None:
        raise LinkNotFoundError("Not found")
    return RedirectResponse(url=target, status_code=307)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tinylink.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
