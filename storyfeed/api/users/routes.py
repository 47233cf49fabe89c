# storyfeed/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app, g

from storyfeed.api.uploads.routes import upload_from_request
from storyfeed.api.users.schemas import ProfileUpdateSchema
from storyfeed.core.security import login_required

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me/profile', methods=['GET'])
@login_required
def get_my_profile():
    profile = current_app.services['profiles'].get_profile(g.viewer.uid)
    return jsonify({"uid": g.viewer.uid, "profile": profile}), 200


@users_bp.route('/me/profile', methods=['PATCH'])
@login_required
def update_my_profile():
    data = ProfileUpdateSchema().load(request.get_json() or {})
    try:
        current_app.services['profiles'].update_profile(g.viewer.uid, data)
    except Exception:
        return jsonify({"error_code": "PROFILE_UPDATE_FAILED", "message": "Failed to update profile"}), 500

    if 'displayName' in data:
        # 새 게시글/댓글의 작성자 이름에 바로 반영되도록 Auth 계정 표시 이름도 갱신
        current_app.services['auth'].update_display_profile(display_name=data['displayName'])
    return jsonify({"uid": g.viewer.uid, "profile": current_app.services['profiles'].get_profile(g.viewer.uid)}), 200


@users_bp.route('/me/avatar', methods=['POST'])
@login_required
def upload_avatar():
    """프로필 사진을 업로드하고 프로필 문서의 photoURL을 갱신합니다."""
    result, error = upload_from_request(g.viewer.uid, folder="profiles")
    if error:
        return error
    try:
        current_app.services['profiles'].update_profile(g.viewer.uid, {'photoURL': result.url})
    except Exception as e:
        logging.error(f"프로필 사진 저장 실패 (uid: {g.viewer.uid}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_UPDATE_FAILED", "message": "Upload failed"}), 500
    return jsonify({"photoURL": result.url}), 200


@users_bp.route('/photos', methods=['GET'])
def get_photos():
    """?uids=a,b,c 형태로 여러 작성자의 프로필 사진 URL을 조회합니다."""
    uids = [uid for uid in request.args.get('uids', '').split(',') if uid]
    if not uids:
        return jsonify({"photos": {}}), 200
    return jsonify({"photos": current_app.services['profiles'].get_photo_urls(uids)}), 200
