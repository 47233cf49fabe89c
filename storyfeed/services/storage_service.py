# storyfeed/services/storage_service.py
import uuid
import logging
from dataclasses import dataclass
from typing import Optional
from flask import Flask
from firebase_admin import storage

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

NOT_AN_IMAGE = "Please select an image file"
TOO_LARGE = "Image must be less than 5MB"
UPLOAD_FAILED = "Upload failed. Please try again."


@dataclass(frozen=True)
class UploadResult:
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class StorageService:
    """
    Firebase Storage 이미지 업로드를 담당하는 서비스 클래스입니다.
    업로드 전에 파일 타입(image/*)과 크기(기본 5MB)를 먼저 검사합니다.
    """

    def __init__(self, bucket=None, max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES):
        """
        bucket은 init_app을 통해 주입됩니다. (테스트에서는 생성자로 직접 주입 가능)
        """
        self.bucket = bucket
        self.max_upload_bytes = max_upload_bytes

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        self.max_upload_bytes = app.config.get('MAX_UPLOAD_BYTES', DEFAULT_MAX_UPLOAD_BYTES)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def validate_image(self, content_type: Optional[str], size: int) -> Optional[str]:
        """업로드 불가 사유를 반환합니다. 문제가 없으면 None."""
        if not content_type or not content_type.startswith('image/'):
            return NOT_AN_IMAGE
        if size > self.max_upload_bytes:
            return TOO_LARGE
        return None

    def upload_image(self, owner_id: str, filename: str, content_type: str, data: bytes,
                     folder: str = "gallery") -> UploadResult:
        """
        이미지를 '<folder>/<owner_id>/<uuid>.<ext>' 경로에 업로드하고 공개 URL을 반환합니다.

        :param owner_id: 업로드한 사용자 ID
        :param filename: 원본 파일명 (확장자 파악에 사용)
        :param content_type: MIME 타입 (예: "image/jpeg")
        :param data: 파일 내용
        :param folder: 저장 폴더 ("gallery", "profiles")
        """
        problem = self.validate_image(content_type, len(data))
        if problem:
            return UploadResult(success=False, error=problem)

        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'img'
        destination_blob_name = f"{folder}/{owner_id}/{uuid.uuid4()}.{extension}"

        try:
            blob = self.bucket.blob(destination_blob_name)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            logging.info(f"이미지 업로드 완료: {destination_blob_name}")
            return UploadResult(success=True, url=blob.public_url)
        except Exception as e:
            logging.error(f"이미지 업로드 실패 ({destination_blob_name}): {e}", exc_info=True)
            return UploadResult(success=False, error=UPLOAD_FAILED)
