import uuid
from io import BytesIO

from minio import Minio
from minio.error import S3Error

from core.config import settings
from core.errors import DependencyError, ValidationError
from utils.image_tools import compress_image_bytes

# ==== Настройка клиента MinIO ====
_endpoint = settings.AWS_S3_ENDPOINT_URL.replace("https://", "").replace("http://", "")
_s3 = Minio(
    _endpoint,
    access_key=settings.AWS_ACCESS_KEY_ID,
    secret_key=settings.AWS_SECRET_ACCESS_KEY,
    region=settings.AWS_S3_REGION,
    secure=settings.AWS_S3_SECURE,
)


def build_key(user_id: int, slot: str) -> str:
    """Ключ объекта: profiles/<user>/<slot>_<uuid>."""
    return f"profiles/{user_id}/{slot}_{uuid.uuid4().hex}"


def public_url(s3_key: str) -> str:
    return f"{settings.s3_base_url}/{s3_key}"


def key_from_url(url: str) -> str:
    """Обратное к public_url: достаёт ключ объекта из публичного URL."""
    prefix = settings.s3_base_url + "/"
    if not url.startswith(prefix):
        raise ValidationError("Photo does not belong to this storage")
    return url[len(prefix):]


def upload_file_to_s3(file_like, key_prefix: str, bucket_name: str | None = None) -> str:
    """
    Сжимает изображение через compress_image_bytes и кладёт в S3.
    Возвращает публичный URL загруженного объекта.
    Бросает ValidationError, если файл не изображение,
    и DependencyError, если хранилище недоступно.
    """
    data = file_like.read()

    try:
        compressed_data, ext = compress_image_bytes(data)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    s3_key = f"{key_prefix}.{ext}"

    try:
        _s3.put_object(
            bucket_name or settings.AWS_S3_BUCKET_NAME,
            s3_key,
            BytesIO(compressed_data),
            length=len(compressed_data),
            content_type=f"image/{'jpeg' if ext == 'jpg' else ext}",
        )
    except S3Error as exc:
        raise DependencyError("Failed to upload photo, please retry") from exc

    return public_url(s3_key)


def delete_file_from_s3(s3_key: str, bucket_name: str | None = None) -> None:
    """Удаляет объект из MinIO/S3."""
    try:
        _s3.remove_object(bucket_name or settings.AWS_S3_BUCKET_NAME, s3_key)
    except S3Error as exc:
        raise DependencyError("Failed to delete photo, please retry") from exc
