import io
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile, status
from PIL import Image, UnidentifiedImageError

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif"}
CONTENT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


def _get_safe_extension(filename: Optional[str]) -> Optional[str]:
    """檔名中安全地取出副檔名"""
    if not filename or "." not in filename:
        return None
    return filename.rsplit(".", 1)[-1].lower()


async def read_image_upload(image: UploadFile, max_bytes: int) -> Tuple[str, bytes, str]:
    """
    上傳圖片檢查 (轉送到後端之前)

    Returns:
        (filename, contents, content_type)
    Raises:
        HTTPException 400 檢查失敗時
    """
    ext = _get_safe_extension(image.filename)
    if not ext or ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"不支援的檔案格式，允許: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    contents = await image.read()
    if not contents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="檔案是空的")
    if len(contents) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"檔案太大，最大: {max_bytes // (1024 * 1024)}MB",
        )

    try:
        with Image.open(io.BytesIO(contents)) as img:
            img.verify()
            fmt = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"無法讀取圖片: {e}",
        ) from e

    content_type = CONTENT_TYPES.get(fmt or "")
    if content_type is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"不支援的圖片格式: {fmt}")

    return image.filename, contents, content_type
