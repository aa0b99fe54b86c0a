"""
文件管理API
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse as DownloadResponse

from app.core.context import AppContext, get_context
from app.core.errors import NotFoundError
from app.schemas.common import ERROR_RESPONSES, MessageResponse
from app.schemas.file import FileCreate, FileResponse, FileUpdate, decode_content
from app.services.query_service import QueryService
from app.services.store_service import StoreService
from app.utils.auth import get_current_claims
from app.utils.deadline import with_deadline

router = APIRouter(
    prefix="/user/{user_id}/category/{categ_id}/file",
    tags=["文件管理"],
    dependencies=[Depends(get_current_claims)],
    responses=ERROR_RESPONSES,
)


@router.post("", response_model=MessageResponse, response_model_exclude_none=True)
async def create_file(
    user_id: uuid.UUID,
    categ_id: uuid.UUID,
    body: FileCreate,
    ctx: AppContext = Depends(get_context),
):
    """
    上传文件，content 为 base64 编码
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    file_id = await with_deadline(StoreService.create_file(
        ctx, categ.user_id, categ.categ_id,
        body.name, body.extension, body.mimetype, decode_content(body.content),
    ))
    return MessageResponse(message="Arquivo criado com sucesso.", id=file_id)


@router.get("", response_model=List[FileResponse])
async def list_files(user_id: uuid.UUID, categ_id: uuid.UUID, ctx: AppContext = Depends(get_context)):
    """
    获取分类下的所有文件
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    return await QueryService.get_files(ctx, categ.categ_id)


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    user_id: uuid.UUID,
    categ_id: uuid.UUID,
    file_id: uuid.UUID,
    ctx: AppContext = Depends(get_context),
):
    """
    获取文件元数据
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    return await QueryService.get_owned_file(ctx, categ, str(file_id))


@router.patch("/{file_id}", response_model=MessageResponse, response_model_exclude_none=True)
async def update_file(
    user_id: uuid.UUID,
    categ_id: uuid.UUID,
    file_id: uuid.UUID,
    body: FileUpdate,
    ctx: AppContext = Depends(get_context),
):
    """
    修改文件元数据，可选替换内容；categId 不同时移动到同一用户的另一个分类
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    old = await QueryService.get_owned_file(ctx, categ, str(file_id))
    content = decode_content(body.content) if body.content is not None else None
    await with_deadline(StoreService.update_file(
        ctx, categ.user_id, old, str(body.categId),
        body.name, body.extension, body.mimetype, content,
    ))
    return MessageResponse(message="Arquivo alterado com sucesso.")


@router.delete("/{file_id}", response_model=MessageResponse, response_model_exclude_none=True)
async def delete_file(
    user_id: uuid.UUID,
    categ_id: uuid.UUID,
    file_id: uuid.UUID,
    ctx: AppContext = Depends(get_context),
):
    """
    删除文件
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    file = await QueryService.get_owned_file(ctx, categ, str(file_id))
    await with_deadline(StoreService.delete_file(ctx, categ.user_id, file))
    return MessageResponse(message="Arquivo removido com sucesso.")


@router.get("/{file_id}/download")
async def download_file(
    user_id: uuid.UUID,
    categ_id: uuid.UUID,
    file_id: uuid.UUID,
    ctx: AppContext = Depends(get_context),
):
    """
    下载文件内容
    """
    categ = await QueryService.get_owned_category(ctx, str(user_id), str(categ_id))
    file = await QueryService.get_owned_file(ctx, categ, str(file_id))
    path = ctx.fs.file_path(categ.user_id, file.categ_id, file.file_id, file.extension)
    if not path.is_file():
        raise NotFoundError(f"conteúdo ausente: {path}", message="Arquivo não encontrado.")
    return DownloadResponse(path, media_type=file.mimetype, filename=file.name)
