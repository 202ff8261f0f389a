import logging
import os

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import SQLAlchemyError

from flylinks import auth, config, crud, database, factory, models, schemas
from flylinks.errors import Forbidden, InvalidCodeError, InvalidUrlError, NotFound, StorageError

# --- Logging ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("flylinks")

# --- DB tables and the code counter ---
try:
    models.Base.metadata.create_all(bind=database.engine)
    with database.SessionLocal() as db:
        factory.ensure_code_factory(db)
except SQLAlchemyError:
    logger.exception("Error setting up the database connection, check DATABASE_URL")
    raise SystemExit(1)

app = FastAPI(
    title="Flylinks",
    description="Shorten URLs into sequential codes and count the clicks on them.",
    version="1.0.0",
)

# --- CORS (allow frontend dev servers, etc.) ---
origins = ["*"] if config.ENVIRONMENT == "dev" else [
    config.PUBLIC_BASE_URL or "http://localhost:8000",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Errors raised by the link store ---
ERROR_STATUS = {
    InvalidUrlError: (400, "The URL you posted is invalid."),
    InvalidCodeError: (409, "The code is invalid or already exists."),
    NotFound: (404, "Sorry, that code is unknown."),
    Forbidden: (403, "That link belongs to another user."),
}

async def _store_error(request: Request, exc: Exception):
    status_code, detail = ERROR_STATUS[type(exc)]
    logger.info("%s %s -> %s: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})

for error in ERROR_STATUS:
    app.add_exception_handler(error, _store_error)

@app.exception_handler(StorageError)
async def _storage_error(request: Request, exc: StorageError):
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "An unknown error occurred"})


def base_url(request: Request) -> str:
    return config.PUBLIC_BASE_URL or str(request.base_url).rstrip("/")

def link_out(request: Request, link: models.ShortUrl) -> schemas.LinkOut:
    out = schemas.LinkOut.model_validate(link)
    out.short_url = f"{base_url(request)}/{link.code}"
    return out


# Health check (useful for uptime monitors & load balancers)
@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "env": config.ENVIRONMENT}

# ---------- API ----------
@app.post("/login", response_model=schemas.Token)
def login(response: Response, form_data: OAuth2PasswordRequestForm = Depends()):
    user = auth.authenticator.authenticate(
        {"username": form_data.username, "password": form_data.password}
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid credentials")
    token = auth.create_access_token({"sub": user})
    # Only set secure cookie if HTTPS is configured
    is_https = config.PUBLIC_BASE_URL.startswith("https://")
    response.set_cookie(
        key="access_token", value=token,
        httponly=True, samesite="lax", secure=is_https, path="/",
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {"access_token": token, "token_type": "bearer"}

@app.post("/logout", include_in_schema=False)
def logout(response: Response):
    response.delete_cookie("access_token", path="/")
    return {"ok": True}

@app.post("/api/add", response_model=schemas.LinkOut)
def add_link(link_in: schemas.LinkCreate, request: Request, db=Depends(database.get_db),
             user=Depends(auth.get_current_user)):
    link = crud.shorten(db, link_in.url, user, link_in.short_code)
    return link_out(request, link)

@app.get("/api/info/{code}", response_model=schemas.LinkOut)
def link_info(code: str, request: Request, db=Depends(database.get_db),
              user=Depends(auth.get_current_user)):
    link = crud.lookup(db, code)
    if not link:
        raise NotFound(code)
    return link_out(request, link)

@app.get("/api/next-code", response_model=schemas.CodeOut)
def issue_code(db=Depends(database.get_db), user=Depends(auth.get_current_user)):
    code = factory.next_code(db)
    logger.info("Issued code %s by=%s", code, user)
    return {"code": code}

@app.delete("/delete/{code}", response_model=schemas.MessageOut)
def delete_link(code: str, db=Depends(database.get_db), user=Depends(auth.get_current_user)):
    crud.delete_url(db, code, user)
    return {"ok": True, "detail": f"Link '{code}' deleted"}

@app.get("/links", response_model=schemas.PaginatedLinks)
def list_links(
    request: Request,
    skip: int = Query(0, ge=0),
    limit: int = Query(config.RECENT_URLS, ge=1, le=200),
    s: str = Query("created_at", pattern="^(" + "|".join(crud.SORT_COLUMNS) + ")$"),
    d: str = Query("desc", pattern="^(asc|desc)$"),
    db=Depends(database.get_db),
    user=Depends(auth.get_current_user),
):
    links = crud.list_urls(db, user=user, limit=limit, sort_column=s, sort_order=d, skip=skip)
    total = crud.count_urls(db, user=user)
    return {
        "items": [link_out(request, link) for link in links],
        "total": total, "skip": skip, "limit": limit,
        "sort_column": s, "sort_order": d,
    }

# Redirect /{code}
@app.get("/{code}", include_in_schema=False)
def redirect(code: str, db=Depends(database.get_db)):
    link = None if code in config.RESERVED_CODES else crud.lookup(db, code)
    if not link:
        raise NotFound(code)
    target = link.url
    try:
        crud.register_click(db, link)
    except Exception:
        logger.exception("Failed to register click for %s", code)
    return RedirectResponse(url=target, status_code=301)


def run():
    uvicorn.run(
        "flylinks.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", 8000)),
    )
