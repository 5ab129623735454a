import logging
import os

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .db import get_conn
from .cache import PersonCache
from . import records, schemas, service

logger = logging.getLogger(__name__)

PERSON_CACHE_SIZE = int(os.environ.get("PERSON_CACHE_SIZE", "256"))

app = FastAPI(title="Lineage Browser")
app.state.person_cache = PersonCache(PERSON_CACHE_SIZE)


def get_person_cache(request: Request) -> PersonCache:
    return request.app.state.person_cache


@app.exception_handler(records.RecordStoreError)
async def record_store_unavailable(request: Request, exc: records.RecordStoreError):
    logger.error("Record store unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Record store unavailable"})


@app.get("/api/lineage", response_model=schemas.GraphOut)
def lineage(root_slug: str | None = Query(None, alias="rootSlug"), conn=Depends(get_conn)):
    return service.get_lineage(conn, root=root_slug)


@app.get("/api/person", response_model=schemas.PersonDetail)
def person(slug: str | None = None, conn=Depends(get_conn),
           cache: PersonCache = Depends(get_person_cache)):
    if not slug or not slug.strip():
        raise HTTPException(400, "slug required")
    slug = slug.strip()
    detail = cache.get(slug)
    if detail is None:
        detail = records.get_person_detail(conn, slug)
        if detail is None:
            raise HTTPException(404, "not found")
        cache.put(slug, detail)
    return detail


@app.get("/api/people", response_model=list[schemas.PersonSummary])
def people(conn=Depends(get_conn)):
    return records.list_people(conn)


@app.post("/api/people", response_model=schemas.BulkCreateOut)
def add_people(body: list[schemas.PersonCreate], conn=Depends(get_conn),
               cache: PersonCache = Depends(get_person_cache)):
    try:
        created = records.bulk_create_people(conn, [p.model_dump() for p in body])
    except ValueError as e:
        raise HTTPException(400, str(e))
    cache.clear()
    return {"message": "People created successfully", "count": len(created)}


@app.get("/health")
def health():
    return {"ok": True}
