# storyfeed/api/auth/services.py
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from flask import Flask

from storyfeed.models.user import Viewer

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Firebase 오류 코드 -> 사용자에게 보여줄 고정 메시지
SIGN_UP_ERRORS = {
    'EMAIL_EXISTS': 'This email is already in use. Please login instead.',
    'WEAK_PASSWORD': 'Password should be at least 6 characters',
    'INVALID_EMAIL': 'Invalid email address',
}
SIGN_IN_ERRORS = {
    'EMAIL_NOT_FOUND': 'No account found with this email',
    'INVALID_PASSWORD': 'Incorrect password',
    'INVALID_EMAIL': 'Invalid email address',
    'INVALID_LOGIN_CREDENTIALS': 'Invalid email or password',
}
RESET_ERRORS = {
    'EMAIL_NOT_FOUND': 'No account found with this email',
    'INVALID_EMAIL': 'Invalid email address',
}


@dataclass(frozen=True)
class AuthResult:
    success: bool
    user: Optional[Viewer] = None
    error: Optional[str] = None


class AuthError(Exception):
    """Identity Toolkit이 돌려준 오류 코드 (예: 'EMAIL_EXISTS')."""
    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


class AuthService:
    """
    Firebase Authentication(Identity Toolkit REST API)과의 통신을 담당하는 서비스 클래스.
    - 현재 로그인한 viewer를 보관하고, 변경될 때마다 등록된 리스너에 알립니다.
    - 모든 공개 메서드는 예외를 던지지 않고 AuthResult로 결과를 돌려줍니다.
    """
    def __init__(self, api_key: Optional[str] = None, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self._current_user: Optional[Viewer] = None
        self._id_token: Optional[str] = None
        self._listeners: List[Callable[[Optional[Viewer]], None]] = []
        self._lock = threading.Lock()

    def init_app(self, app: Flask):
        """앱 초기화 과정에서 호출되어 API 키와 타임아웃을 설정합니다."""
        self.api_key = app.config.get('FIREBASE_WEB_API_KEY')
        self.timeout = app.config.get('AUTH_REQUEST_TIMEOUT', self.timeout)
        if not self.api_key:
            logging.warning("FIREBASE_WEB_API_KEY가 설정되지 않았습니다. 로그인/회원가입이 동작하지 않습니다.")

    # --- viewer 상태 ---
    @property
    def current_user(self) -> Optional[Viewer]:
        return self._current_user

    def add_listener(self, listener: Callable[[Optional[Viewer]], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def remove():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return remove

    def _set_current_user(self, user: Optional[Viewer], id_token: Optional[str] = None):
        with self._lock:
            self._current_user = user
            self._id_token = id_token
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(user)
            except Exception as e:
                logging.error(f"인증 상태 리스너 호출 중 오류 발생: {e}", exc_info=True)

    # --- REST 호출 ---
    def _call(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(
            f"{IDENTITY_TOOLKIT_URL}/{endpoint}",
            params={'key': self.api_key},
            json=payload,
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            try:
                message = response.json().get('error', {}).get('message', '')
            except ValueError:
                message = response.text
            # 예: "WEAK_PASSWORD : Password should be at least 6 characters"
            code = message.split(':', 1)[0].strip() or f"HTTP_{response.status_code}"
            raise AuthError(code, message)
        return response.json()

    @staticmethod
    def _viewer_from(data: Dict[str, Any], display_name: Optional[str] = None) -> Viewer:
        return Viewer(
            uid=data['localId'],
            email=data.get('email'),
            display_name=display_name or data.get('displayName') or None,
            photo_url=data.get('photoUrl') or None,
        )

    @staticmethod
    def _message_for(error: Exception, mapping: Dict[str, str], default: str) -> str:
        if isinstance(error, AuthError):
            return mapping.get(error.code, default)
        return default

    # --- 공개 API ---
    def sign_up(self, email: str, password: str, username: str) -> AuthResult:
        """계정을 만들고 표시 이름(username)을 설정한 뒤 로그인 상태로 전환합니다."""
        try:
            data = self._call('accounts:signUp', {'email': email, 'password': password, 'returnSecureToken': True})
            profile = self._call('accounts:update', {
                'idToken': data['idToken'],
                'displayName': username,
                'returnSecureToken': True,
            })
            id_token = profile.get('idToken') or data['idToken']
            user = self._viewer_from({**data, **profile}, display_name=username)
        except Exception as e:
            logging.error(f"회원가입 실패 (email: {email}): {e}")
            return AuthResult(success=False, error=self._message_for(e, SIGN_UP_ERRORS, 'Failed to create account'))

        self._set_current_user(user, id_token)
        logging.info(f"회원가입 성공 (uid: {user.uid})")
        return AuthResult(success=True, user=user)

    def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            data = self._call('accounts:signInWithPassword', {'email': email, 'password': password, 'returnSecureToken': True})
            user = self._viewer_from(data)
        except Exception as e:
            logging.error(f"로그인 실패 (email: {email}): {e}")
            return AuthResult(success=False, error=self._message_for(e, SIGN_IN_ERRORS, 'Failed to login'))

        self._set_current_user(user, data.get('idToken'))
        logging.info(f"로그인 성공 (uid: {user.uid})")
        return AuthResult(success=True, user=user)

    def sign_out(self) -> AuthResult:
        """로컬 세션만 정리합니다 (ID 토큰은 만료될 때까지 서버 측에서 유효)."""
        previous = self._current_user
        self._set_current_user(None)
        logging.info(f"로그아웃 완료 (uid: {previous.uid if previous else None})")
        return AuthResult(success=True)

    def send_password_reset(self, email: str) -> AuthResult:
        try:
            self._call('accounts:sendOobCode', {'requestType': 'PASSWORD_RESET', 'email': email})
        except Exception as e:
            logging.error(f"비밀번호 재설정 메일 발송 실패 (email: {email}): {e}")
            return AuthResult(success=False, error=self._message_for(e, RESET_ERRORS, 'Failed to send reset email'))
        return AuthResult(success=True)

    def update_display_profile(self, display_name: Optional[str] = None, photo_url: Optional[str] = None) -> AuthResult:
        """현재 사용자의 Firebase Auth 표시 이름/사진을 갱신합니다."""
        user = self._current_user
        if user is None or not self._id_token:
            return AuthResult(success=False, error='Please login to continue')
        payload: Dict[str, Any] = {'idToken': self._id_token, 'returnSecureToken': True}
        if display_name is not None:
            payload['displayName'] = display_name
        if photo_url is not None:
            payload['photoUrl'] = photo_url
        try:
            data = self._call('accounts:update', payload)
        except Exception as e:
            logging.error(f"Auth 프로필 갱신 실패 (uid: {user.uid}): {e}")
            return AuthResult(success=False, error='Failed to update profile')

        updated = Viewer(
            uid=user.uid,
            email=user.email,
            display_name=display_name if display_name is not None else user.display_name,
            photo_url=photo_url if photo_url is not None else user.photo_url,
        )
        self._set_current_user(updated, data.get('idToken') or self._id_token)
        return AuthResult(success=True, user=updated)
