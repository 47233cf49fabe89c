# storyfeed/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app, g

from storyfeed.core.security import login_required

# 이 블루프린트에 속한 모든 API는 '/api/uploads' 접두사 URL을 갖습니다.
uploads_bp = Blueprint('uploads', __name__)


def upload_from_request(owner_id: str, folder: str):
    """
    multipart 요청의 'file' 필드를 Storage에 업로드합니다.
    반환값: (UploadResult | None, 오류 응답 | None)
    """
    file = request.files.get('file')
    if file is None or not file.filename:
        return None, (jsonify({"error_code": "FILE_REQUIRED", "message": "Please select an image file"}), 400)

    data = file.read()
    result = current_app.services['storage'].upload_image(owner_id, file.filename, file.mimetype, data, folder=folder)
    if not result.success:
        logging.warning(f"업로드 거부/실패 (owner: {owner_id}, file: {file.filename}): {result.error}")
        return None, (jsonify({"error_code": "UPLOAD_FAILED", "message": result.error}), 400)
    return result, None


@uploads_bp.route('/images', methods=['POST'])
@login_required
def upload_image():
    """
    게시글에 사용할 이미지를 업로드하고 공개 URL을 반환합니다.
    파일 타입(image/*)과 크기(5MB 이하)는 업로드 전에 검사합니다.
    """
    result, error = upload_from_request(g.viewer.uid, folder="posts")
    if error:
        return error
    return jsonify({"url": result.url}), 201
