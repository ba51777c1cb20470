"""Resource library routes: list, download, upload and delete."""
import math
import mimetypes
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from . import config, schemas
from .auth import check_csrf_token, get_current_session, get_current_user_id, require_admin
from .database import get_db
from .logging_config import configure_logging
from .models import Resource, User

router = APIRouter(prefix="/resources", tags=["resources"])
logger = configure_logging()


def resource_file(resource: Resource) -> Path:
    return Path(config.UPLOAD_DIR) / Path(resource.file_path).name


def _resource_out(resource: Resource) -> schemas.ResourceOut:
    return schemas.ResourceOut(
        id=resource.id,
        title=resource.title,
        description=resource.description or "",
        file_name=Path(resource.file_path).name,
        file_size=resource.file_size or 0,
        download_count=resource.download_count or 0,
        uploader_name=resource.uploader.name if resource.uploader else "Unknown",
        created_at=resource.created_at,
    )


@router.get("/list.php", response_model=schemas.ResourcePage)
def list_resources(
    page: int = 1,
    search: str = "",
    sort: str = "created_at",
    order: str = "DESC",
    db: Session = Depends(get_db),
    _: int = Depends(get_current_user_id),
):
    page = max(1, page)
    search = search.strip()
    if sort not in config.RESOURCE_SORT_FIELDS:
        sort = "created_at"
    order = order.upper()
    if order not in config.RESOURCE_SORT_ORDERS:
        order = "DESC"

    query = db.query(Resource)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Resource.title.like(pattern), Resource.description.like(pattern)))

    total = query.count()
    per_page = config.RESOURCES_PER_PAGE
    column = getattr(Resource, sort)
    rows: List[Resource] = (
        query.order_by(column.asc() if order == "ASC" else column.desc(), Resource.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    popular = (
        db.query(Resource)
        .filter(Resource.download_count > 0)
        .order_by(Resource.download_count.desc(), Resource.created_at.desc())
        .limit(5)
        .all()
    )
    recent = db.query(Resource).order_by(Resource.created_at.desc(), Resource.id.desc()).limit(5).all()

    return schemas.ResourcePage(
        resources=[_resource_out(r) for r in rows],
        page=page,
        per_page=per_page,
        total=total,
        total_pages=math.ceil(total / per_page),
        search=search,
        sort=sort,
        order=order,
        popular=[_resource_out(r) for r in popular],
        recent=[_resource_out(r) for r in recent],
    )


@router.get("/download.php")
def download_resource(id: int = 0, db: Session = Depends(get_db), current_user_id: int = Depends(get_current_user_id)):
    if id <= 0:
        raise HTTPException(status_code=400, detail="Invalid resource ID")
    resource: Optional[Resource] = db.query(Resource).filter(Resource.id == id).first()
    if not resource:
        raise HTTPException(status_code=404, detail="Resource not found")

    path = resource_file(resource)
    if not path.is_file():
        logger.error("RESOURCE_FILE_MISSING resource_id=%s path=%s", resource.id, path)
        raise HTTPException(status_code=404, detail="Resource file not found on server")

    resource.download_count = (resource.download_count or 0) + 1
    db.commit()
    logger.info("RESOURCE_DOWNLOADED user_id=%s resource_id=%s title=%s", current_user_id, resource.id, resource.title)

    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(
        path,
        media_type=media_type,
        filename=path.name,
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
        },
    )


@router.post("/upload.php")
def upload_resource(
    title: str = Form(...),
    description: str = Form(""),
    csrf_token: str = Form(""),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    session: Dict[str, Any] = Depends(get_current_session),
    admin: User = Depends(require_admin),
):
    if not check_csrf_token(session, csrf_token):
        logger.warning("CSRF_REJECTED user_id=%s action=upload_resource", admin.id)
        return JSONResponse(status_code=403, content={"success": False, "error": "Invalid security token"})

    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}_{Path(file.filename or 'upload').name}"
    target = upload_dir / stored_name
    with target.open("wb") as out:
        shutil.copyfileobj(file.file, out)

    resource = Resource(
        title=title.strip(),
        description=description.strip(),
        file_path=stored_name,
        file_size=target.stat().st_size,
        uploaded_by=admin.id,
    )
    db.add(resource)
    db.commit()
    db.refresh(resource)
    logger.info("RESOURCE_UPLOADED user_id=%s resource_id=%s title=%s", admin.id, resource.id, resource.title)
    return {"success": True, "resource": _resource_out(resource).model_dump(mode="json")}


@router.post("/delete.php")
def delete_resource(
    resource_id: int = Form(0),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
    session: Dict[str, Any] = Depends(get_current_session),
    admin: User = Depends(require_admin),
):
    if not check_csrf_token(session, csrf_token):
        logger.warning("CSRF_REJECTED user_id=%s action=delete_resource", admin.id)
        return JSONResponse(status_code=403, content={"success": False, "error": "Invalid security token"})
    if resource_id <= 0:
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid resource ID"})

    resource: Optional[Resource] = db.query(Resource).filter(Resource.id == resource_id).first()
    if not resource:
        return JSONResponse(status_code=404, content={"success": False, "error": "Resource not found"})

    path = resource_file(resource)
    title = resource.title
    db.delete(resource)
    db.commit()

    # The row is gone at this point; a leftover file is only logged.
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.error("RESOURCE_FILE_DELETE_FAIL resource_id=%s path=%s error=%s", resource_id, path, exc)

    logger.info("RESOURCE_DELETED user_id=%s resource_id=%s title=%s", admin.id, resource_id, title)
    return {"success": True, "message": "Resource deleted successfully"}
