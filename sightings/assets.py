import base64
import binascii
import re
from pathlib import Path
from typing import Union
from uuid import uuid4

from .exceptions import InvalidImage, NotFound, StorageFailure

DATA_URL_RE = re.compile(r"^data:(image/[^;]+);base64,(.+)$", re.DOTALL)
REF_RE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9]+$")


def decode_data_url(captured: str) -> tuple[bytes, str]:
    """Split a ``data:image/...;base64,`` URL into bytes and a file extension."""
    match = DATA_URL_RE.match(captured or "")
    if not match:
        raise InvalidImage("image required")
    ext = match.group(1).split("/")[1] or "jpg"
    try:
        data = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImage("image data is not valid base64")
    if not data:
        raise InvalidImage("image required")
    return data, ext


def encode_data_url(data: bytes, ext: str = "jpeg") -> str:
    return f"data:image/{ext};base64,{base64.b64encode(data).decode('ascii')}"


class FileAssetStore:
    def __init__(self, upload_dir: Union[str, Path], max_bytes: int = 10 * 1024 * 1024):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def store(self, data: bytes, ext: str = "jpg") -> str:
        if len(data) > self.max_bytes:
            raise InvalidImage(f"image larger than {self.max_bytes} bytes")
        ext = re.sub(r"[^A-Za-z0-9]", "", ext) or "jpg"
        image_ref = f"{uuid4()}.{ext}"
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            (self.upload_dir / image_ref).write_bytes(data)
        except OSError as e:
            raise StorageFailure(f"Failed to store image {image_ref}") from e
        return image_ref

    def fetch(self, image_ref: str) -> bytes:
        if not REF_RE.match(image_ref or ""):
            raise NotFound(f"Image {image_ref} not found")
        try:
            return (self.upload_dir / image_ref).read_bytes()
        except FileNotFoundError:
            raise NotFound(f"Image {image_ref} not found")
