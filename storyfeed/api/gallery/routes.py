# storyfeed/api/gallery/routes.py
import logging
from flask import Blueprint, jsonify, current_app, g

from storyfeed.api.gallery.schemas import GalleryImageSchema
from storyfeed.api.uploads.routes import upload_from_request
from storyfeed.core.security import login_required

gallery_bp = Blueprint('gallery_bp', __name__)


@gallery_bp.route('', methods=['GET'])
@login_required
def list_gallery():
    """현재 viewer가 업로드한 이미지 목록 (실시간 구독으로 유지되는 캐시, 최신 순)."""
    images = current_app.services['session'].gallery
    return jsonify({"images": GalleryImageSchema(many=True).dump(images)}), 200


@gallery_bp.route('', methods=['POST'])
@login_required
def upload_gallery_image():
    """이미지를 업로드하고 갤러리에 'uploaded' 카테고리로 등록합니다."""
    result, error = upload_from_request(g.viewer.uid, folder="gallery")
    if error:
        return error

    try:
        image_id = current_app.services['gallery'].register_upload(result.url, g.viewer.uid, g.viewer.name)
    except Exception as e:
        logging.error(f"갤러리 등록 실패 (uid: {g.viewer.uid}): {e}", exc_info=True)
        return jsonify({"error_code": "GALLERY_SAVE_FAILED", "message": "Upload failed. Please try again."}), 500

    return jsonify({"id": image_id, "url": result.url}), 201


@gallery_bp.route('/<string:image_id>', methods=['DELETE'])
@login_required
def delete_gallery_image(image_id: str):
    """본인이 업로드한 이미지만 삭제할 수 있습니다."""
    try:
        deleted = current_app.services['gallery'].delete_image(image_id, owner_id=g.viewer.uid)
    except Exception as e:
        logging.error(f"갤러리 이미지 삭제 실패 (image_id: {image_id}): {e}", exc_info=True)
        return jsonify({"error_code": "GALLERY_DELETE_FAILED", "message": "Failed to delete image"}), 500

    if not deleted:
        return jsonify({"error_code": "FORBIDDEN_OR_NOT_FOUND", "message": "You can only delete your own images"}), 403
    return jsonify({"success": True}), 200
