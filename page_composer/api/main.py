"""
PAGE_COMPOSER — FastAPI app
Démarrer : uvicorn page_composer.api.main:app --reload --port 8002
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .. import __version__
from ..core.errors import BadRequest, ComposerError, ValidationFailed

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s — %(message)s")
log = logging.getLogger(__name__)

app = FastAPI(title="PAGE_COMPOSER — Composition de pages", version=__version__, docs_url="/docs")

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(ComposerError)
async def composer_error_handler(request: Request, exc: ComposerError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # corps, query ou chemin mal formés → 400 au format commun
    errors = exc.errors()
    missing = [e for e in errors if e.get("type") == "missing"]
    first = (missing or errors or [{}])[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "header")) or "body"
    if missing:
        err = BadRequest(f"Paramètre requis '{field}' manquant")
    else:
        err = BadRequest(f"Paramètre '{field}' invalide : {first.get('msg', '')}", code="INVALID_PARAMETER")
    log.info("Requête rejetée sur %s : %s", request.url.path, err.message)
    return JSONResponse(err.to_dict(), status_code=err.status_code)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    # la session de la requête est fermée (rollback) par get_db
    log.error("Erreur de persistance non traduite sur %s : %s", request.url.path, exc)
    err = ValidationFailed(["la sauvegarde a échoué"])
    return JSONResponse(err.to_dict(), status_code=err.status_code)


@app.on_event("startup")
def startup():
    from ..database import init_db
    init_db()
    log.info("DB initialisée")


@app.get("/health")
def health():
    return {"status": "ok", "service": "page_composer", "version": __version__}


from .routes import page_contents, page_part_content, page_parts, pages  # noqa: E402

app.include_router(pages.router)
app.include_router(page_contents.router)
app.include_router(page_part_content.router)
app.include_router(page_parts.router)
