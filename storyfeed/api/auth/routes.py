# storyfeed/api/auth/routes.py

from flask import Blueprint, request, jsonify, current_app

from storyfeed.api.auth.schemas import SignUpSchema, SignInSchema, PasswordResetSchema, ViewerSchema

auth_bp = Blueprint('auth_bp', __name__)


def _auth_response(result, success_status=200):
    """AuthResult를 {success, user, error} JSON으로 변환합니다. 실패는 400."""
    body = {
        "success": result.success,
        "user": ViewerSchema().dump(result.user) if result.user else None,
        "error": result.error,
    }
    return jsonify(body), (success_status if result.success else 400)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    data = SignUpSchema().load(request.get_json() or {})
    result = current_app.services['auth'].sign_up(data['email'], data['password'], data['username'])
    return _auth_response(result, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = SignInSchema().load(request.get_json() or {})
    return _auth_response(current_app.services['auth'].sign_in(data['email'], data['password']))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    return _auth_response(current_app.services['auth'].sign_out())


@auth_bp.route('/password-reset', methods=['POST'])
def password_reset():
    data = PasswordResetSchema().load(request.get_json() or {})
    return _auth_response(current_app.services['auth'].send_password_reset(data['email']))


@auth_bp.route('/me', methods=['GET'])
def me():
    """현재 로그인한 viewer. 로그인하지 않았으면 user는 null."""
    viewer = current_app.services['auth'].current_user
    return jsonify({"user": ViewerSchema().dump(viewer) if viewer else None}), 200
