from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
from typing import List, Tuple
from pathlib import Path
import logging
import mimetypes
import os
import uuid

import aiofiles
import aiofiles.os

from crm import config
from crm.database import get_db
from crm.auth.dependencies import get_current_principal, require_admin, require_client
from crm.auth.schemas import Principal
from crm.errors import APIError, not_found, validation_error
from crm.models import Project, ProjectFile, PrincipalType
from crm.projects.routes import get_project_for_principal
from crm.uploads.schemas import FileShareUpdate, ProjectFileResponse, ProjectFileListItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])

ALLOWED_EXTENSIONS = {
    '.pdf', '.doc', '.docx', '.txt', '.rtf', '.md', '.csv',
    '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.xls', '.xlsx', '.ppt', '.pptx', '.zip'
}


def validate_file(file: UploadFile) -> None:
    if not file.filename:
        raise validation_error("No file provided")

    file_extension = Path(file.filename).suffix.lower()
    if file_extension not in ALLOWED_EXTENSIONS:
        raise validation_error(
            f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )


async def read_upload(file: UploadFile) -> bytes:
    content = await file.read()
    if len(content) > config.MAX_FILE_SIZE:
        raise APIError(status_code=413, detail="File too large", code="FILE_TOO_LARGE")
    return content


async def save_uploaded_file(file: UploadFile, content: bytes, project_id: int) -> Tuple[str, str, int]:
    """Save an upload under the project's directory; returns (filename, path, size)."""
    project_dir = os.path.join(config.UPLOAD_DIR, str(project_id))
    await aiofiles.os.makedirs(project_dir, exist_ok=True)

    filename = f"{uuid.uuid4()}{Path(file.filename).suffix.lower()}"
    file_path = os.path.join(project_dir, filename)
    async with aiofiles.open(file_path, 'wb') as f:
        await f.write(content)

    return filename, file_path, len(content)


async def remove_stored_files(paths: List[str]) -> None:
    for file_path in paths:
        if os.path.exists(file_path):
            await aiofiles.os.remove(file_path)


def get_file_for_principal(db: Session, file_id: int, principal: Principal) -> ProjectFile:
    query = db.query(ProjectFile).filter(ProjectFile.id == file_id)
    if not principal.is_admin:
        query = query.join(Project).filter(
            Project.client_id == principal.client_id,
            ProjectFile.shared_with_client == True
        )

    project_file = query.first()
    if not project_file:
        raise not_found("File")
    return project_file


def to_list_item(project_file: ProjectFile) -> ProjectFileListItem:
    item = ProjectFileListItem(**ProjectFileResponse.model_validate(project_file).dict())
    if project_file.project is not None:
        item.project_name = project_file.project.project_name
    return item

# =====================================================
# PROJECT FILES
# =====================================================

@router.post("/project/{project_id}", status_code=status.HTTP_201_CREATED)
async def upload_project_files(
    project_id: int,
    files: List[UploadFile] = File(...),
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Upload one or more files to a project. Client uploads are shared by default."""
    get_project_for_principal(db, project_id, current_user)

    for file in files:
        validate_file(file)

    # Every size is checked before anything touches the disk
    contents = [await read_upload(file) for file in files]

    saved = []
    written: List[str] = []
    try:
        for file, content in zip(files, contents):
            filename, file_path, file_size = await save_uploaded_file(file, content, project_id)
            written.append(file_path)
            project_file = ProjectFile(
                project_id=project_id,
                original_name=file.filename,
                filename=filename,
                file_path=file_path,
                mime_type=file.content_type or mimetypes.guess_type(file.filename)[0] or 'application/octet-stream',
                file_size=file_size,
                uploaded_by=current_user.type.value,
                shared_with_client=current_user.type == PrincipalType.CLIENT,
            )
            db.add(project_file)
            saved.append(project_file)

        db.commit()
    except Exception:
        db.rollback()
        await remove_stored_files(written)
        raise

    for project_file in saved:
        db.refresh(project_file)

    logger.info("Stored %d file(s) for project %s", len(saved), project_id)
    return {"success": True, "files": [ProjectFileResponse.model_validate(f) for f in saved]}

@router.get("/project/{project_id}")
def list_project_files(
    project_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    get_project_for_principal(db, project_id, current_user)

    query = db.query(ProjectFile).filter(ProjectFile.project_id == project_id)
    if not current_user.is_admin:
        query = query.filter(ProjectFile.shared_with_client == True)

    files = query.order_by(desc(ProjectFile.created_at), desc(ProjectFile.id)).all()
    return {"files": [ProjectFileResponse.model_validate(f) for f in files]}

@router.get("")
def list_all_files(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    files = db.query(ProjectFile).options(joinedload(ProjectFile.project)).order_by(
        desc(ProjectFile.created_at), desc(ProjectFile.id)
    ).all()
    return {"files": [to_list_item(f) for f in files]}

@router.get("/client")
def list_client_files(
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    files = db.query(ProjectFile).join(Project).options(joinedload(ProjectFile.project)).filter(
        Project.client_id == current_user.client_id,
        ProjectFile.shared_with_client == True
    ).order_by(desc(ProjectFile.created_at), desc(ProjectFile.id)).all()
    return {"files": [to_list_item(f) for f in files]}

# =====================================================
# SINGLE FILE
# =====================================================

@router.get("/file/{file_id}")
def download_file(
    file_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    project_file = get_file_for_principal(db, file_id, current_user)
    if not os.path.exists(project_file.file_path):
        raise not_found("File")

    return FileResponse(
        project_file.file_path,
        media_type=project_file.mime_type or 'application/octet-stream',
        filename=project_file.original_name,
    )

@router.put("/file/{file_id}/share")
def update_file_sharing(
    file_id: int,
    share: FileShareUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    project_file = get_file_for_principal(db, file_id, current_user)
    project_file.shared_with_client = share.shared
    db.commit()
    return {"success": True, "shared": project_file.shared_with_client}

@router.delete("/file/{file_id}")
async def delete_file(
    file_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    project_file = get_file_for_principal(db, file_id, current_user)
    file_path = project_file.file_path

    db.delete(project_file)
    db.commit()

    if await aiofiles.os.path.exists(file_path):
        await aiofiles.os.remove(file_path)

    return {"success": True, "message": "File deleted successfully"}
