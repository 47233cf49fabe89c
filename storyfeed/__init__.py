# storyfeed/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import atexit
import logging
from typing import Any, Dict, Optional
from flask import Flask, jsonify
from marshmallow import ValidationError
import firebase_admin
from firebase_admin import credentials

# - 설정
from storyfeed.core.config import config_by_name

# - API 블루프린트
from storyfeed.api.auth.routes import auth_bp
from storyfeed.api.posts.routes import posts_bp
from storyfeed.api.gallery.routes import gallery_bp
from storyfeed.api.users.routes import users_bp
from storyfeed.api.uploads.routes import uploads_bp

# - 서비스 모듈
from storyfeed.api.auth.services import AuthService
from storyfeed.api.posts.services import PostService
from storyfeed.api.gallery.services import GalleryService
from storyfeed.api.users.services import ProfileService
from storyfeed.services.storage_service import StorageService
from storyfeed.services.feed_store import FeedStore
from storyfeed.services.feed_session import FeedSession

GENERIC_ERROR_MESSAGE = "Something went wrong. Please reload the page."


def _init_firebase(app: Flask):
    if firebase_admin._apps:
        return
    cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def _build_services(app: Flask) -> Dict[str, Any]:
    """Firebase에 연결된 실제 협력 서비스(collaborator)들을 생성합니다."""
    services: Dict[str, Any] = {}

    try:
        storage_instance = StorageService()
        storage_instance.init_app(app)
        services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    auth_instance = AuthService()
    auth_instance.init_app(app)
    services['auth'] = auth_instance

    services['posts'] = PostService()
    services['gallery'] = GalleryService()
    services['profiles'] = ProfileService()
    return services


def shutdown_services(app: Flask):
    """실시간 구독을 해제하고 피드 스토어의 백엔드 호출 워커를 종료합니다. 프로세스 종료 시 호출됩니다."""
    app.services['session'].stop()
    app.services['feed_store'].close()
    logging.info("피드 세션과 스토어를 종료했습니다.")


def create_app(config_name: Optional[str] = None, services: Optional[Dict[str, Any]] = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production' (기본값: FLASK_ENV)
    :param services: 미리 만든 협력 서비스 딕셔너리. 주어지면 Firebase 초기화를 건너뜁니다 (테스트용).
                     필요한 키: 'auth', 'posts', 'gallery', 'profiles', 'storage'
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 외부 서비스 초기화 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    if services is None:
        _init_firebase(app)
        services = _build_services(app)
    app.services = dict(services)

    # - 피드 스토어와 viewer 세션 (협력 서비스를 주입받아 생성)
    if 'feed_store' not in app.services:
        app.services['feed_store'] = FeedStore(
            post_service=app.services['posts'],
            word_limit=app.config['POST_WORD_LIMIT'],
        )
    if 'session' not in app.services:
        app.services['session'] = FeedSession(
            auth_service=app.services['auth'],
            post_service=app.services['posts'],
            gallery_service=app.services['gallery'],
            store=app.services['feed_store'],
        )
    app.services['session'].start()
    atexit.register(shutdown_services, app)

    # =====================================================================================
    # 5. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(gallery_bp, url_prefix='/api/gallery')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')

    # =====================================================================================
    # 6. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(413)
    def handle_payload_too_large(err):
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "Image must be less than 5MB"}), 413

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리 (화면의 '다시 불러오기' 안내와 동일)
        code = getattr(err, 'code', None)
        if isinstance(code, int) and 400 <= code < 500:
            return jsonify({"error_code": getattr(err, 'name', 'HTTP_ERROR').upper().replace(' ', '_'),
                            "message": getattr(err, 'description', str(err))}), code
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": GENERIC_ERROR_MESSAGE}
        return jsonify(response), 500

    # =====================================================================================
    # 7. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
