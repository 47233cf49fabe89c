# storyfeed/core/security.py
from functools import wraps
from flask import jsonify, g, current_app


def login_required(f):
    """
    현재 세션에 로그인한 viewer가 있어야 호출할 수 있는 라우트에 붙입니다.
    viewer는 g.viewer로 전달됩니다.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        viewer = current_app.services['auth'].current_user
        if viewer is None:
            return jsonify({"error_code": "LOGIN_REQUIRED", "message": "Please login to continue"}), 401
        g.viewer = viewer
        return f(*args, **kwargs)

    return decorated_function
