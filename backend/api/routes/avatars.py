"""Avatar upload, generation and confirmation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_avatar_service, get_current_user_id
from core import PayloadTooLargeError, settings
from services import AvatarService, UploadTooLargeError, read_upload_file

from .schemas import UserResponse

router = APIRouter(prefix="/users/avatar", tags=["avatars"])


class GenerateAvatarRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str | None = Field(default=None, max_length=4000)
    art_style: str | None = Field(default=None, alias="artStyle")
    artistic_filters: list[str] | None = Field(default=None, alias="artisticFilters")


class SaveGeneratedAvatarRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str | None = Field(default=None, alias="imageUrl", max_length=4096)
    preview_ticket: str | None = Field(default=None, alias="previewTicket")


class AvatarSavedResponse(BaseModel):
    message: str
    avatar_url: str
    user: UserResponse


class GeneratedAvatarResponse(BaseModel):
    message: str
    image_url: str
    preview_ticket: str | None = None


@router.post("/upload", response_model=AvatarSavedResponse)
async def upload_avatar(
    avatar: UploadFile | None = File(default=None),
    user_id: str = Depends(get_current_user_id),
    avatars: AvatarService = Depends(get_avatar_service),
) -> AvatarSavedResponse:
    data = b""
    if avatar is not None:
        try:
            data = await read_upload_file(avatar, settings.upload_max_bytes)
        except UploadTooLargeError as exc:
            raise PayloadTooLargeError(str(exc)) from exc

    result = await avatars.upload(
        user_id,
        data,
        filename=avatar.filename if avatar is not None else None,
        content_type=avatar.content_type if avatar is not None else None,
    )
    return AvatarSavedResponse(
        message="Avatar uploaded and saved successfully.",
        avatar_url=result.avatar_url,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/generate", response_model=GeneratedAvatarResponse)
async def generate_avatar(
    payload: GenerateAvatarRequest,
    user_id: str = Depends(get_current_user_id),
    avatars: AvatarService = Depends(get_avatar_service),
) -> GeneratedAvatarResponse:
    preview = await avatars.generate(
        payload.prompt,
        payload.art_style,
        payload.artistic_filters,
        user_id=user_id,
    )
    return GeneratedAvatarResponse(
        message="Avatar generated successfully. Please confirm to save.",
        image_url=preview.image_url,
        preview_ticket=preview.preview_ticket,
    )


@router.post("/save-generated", response_model=AvatarSavedResponse)
async def save_generated_avatar(
    payload: SaveGeneratedAvatarRequest,
    user_id: str = Depends(get_current_user_id),
    avatars: AvatarService = Depends(get_avatar_service),
) -> AvatarSavedResponse:
    result = await avatars.save_generated(
        user_id,
        payload.image_url,
        preview_ticket=payload.preview_ticket,
    )
    return AvatarSavedResponse(
        message="Avatar generated and saved successfully.",
        avatar_url=result.avatar_url,
        user=UserResponse.model_validate(result.user),
    )
