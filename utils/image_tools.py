# utils/image_tools.py

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

# Длинная сторона фото профиля после ужатия
MAX_SIDE_PX = 1600


def compress_image_bytes(
    data: bytes,
    quality: int = 85,
    max_side: int = MAX_SIDE_PX,
) -> tuple[bytes, str]:
    """
    Готовит фото профиля к хранению:
    - поворачивает по EXIF и выбрасывает метаданные (геотеги в том числе);
    - уменьшает до max_side по длинной стороне, пропорции сохраняются;
    - убирает альфа-канал и сохраняет в JPEG (WebP остаётся WebP).

    Возвращает (compressed_bytes, ext), где ext: "webp" или "jpg".
    Бросает ValueError, если файл не распознан как изображение.
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError):
        raise ValueError("Unsupported file: not an image")

    orig_fmt = (img.format or "JPEG").upper()

    img = ImageOps.exif_transpose(img)
    img.thumbnail((max_side, max_side))

    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    buf = BytesIO()
    if orig_fmt == "WEBP":
        img.save(buf, "WEBP", quality=quality)
        ext = "webp"
    else:
        img.save(buf, "JPEG", quality=quality, optimize=True, progressive=True)
        ext = "jpg"

    return buf.getvalue(), ext
