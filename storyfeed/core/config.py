# storyfeed/core/config.py

import os


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # Firebase Admin SDK 서비스 계정 키 파일 경로 (Firestore / Storage 접근용)
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    # Identity Toolkit REST 호출에 쓰는 웹 API 키 (로그인/회원가입)
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')
    AUTH_REQUEST_TIMEOUT = float(os.getenv('AUTH_REQUEST_TIMEOUT', '10'))

    MAX_UPLOAD_BYTES = 5 * 1024 * 1024
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024  # multipart 오버헤드 여유분
    POST_WORD_LIMIT = 150


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다. 서비스는 create_app(services=...)으로 주입합니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_WEB_API_KEY = 'test-api-key'


class ProductionConfig(Config):
    DEBUG = False


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig,
)
