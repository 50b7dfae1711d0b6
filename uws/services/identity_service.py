import hashlib
import hmac
import logging
import os
import uuid
from datetime import datetime, timedelta
from typing import Dict, Any

from uws.database import models
from uws.repositories.interfaces import IUserRepository
from uws.services.exceptions import (
    UserCreationError, UserNotFoundError, AuthenticationError, TokenInvalidError
)

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: str = None) -> str:
    """비밀번호를 'salt$hexdigest' 형식의 PBKDF2-SHA256 해시로 변환합니다."""
    salt = salt or os.urandom(16).hex()
    digest = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    salt, _, _ = password_hash.partition('$')
    return hmac.compare_digest(hash_password(password, salt), password_hash)


class IdentityService:
    """사용자 등록과 토큰 기반 인증을 제공합니다. 발급한 토큰의 사용자 ID가 인스턴스 소유자 ID가 됩니다."""
    _token_cache = {}

    def __init__(self, user_repo: IUserRepository, token_ttl_minutes: int = 60):
        """
        IdentityService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            token_ttl_minutes: 발급한 토큰의 유효 시간(분).
        """
        self.user_repo = user_repo
        self.token_ttl = timedelta(minutes=token_ttl_minutes)

    def create_user(self, username: str, password: str) -> Dict[str, Any]:
        """
        새로운 사용자를 생성합니다. 비밀번호는 해시하여 저장합니다.

        Raises:
            UserCreationError: 입력값이 비어 있거나 동일한 이름의 사용자가 이미 존재할 때.
        """
        if not isinstance(username, str) or not isinstance(password, str):
            raise UserCreationError("Username and password must be strings.")
        if not username or not password:
            raise UserCreationError("Username and password are required.")
        if self.user_repo.find_by_username(username):
            raise UserCreationError(f"User with username '{username}' already exists.")

        new_user = models.User(username=username, password_hash=hash_password(password))
        created_user = self.user_repo.create(new_user)
        logger.info("User '%s' registered (id=%s).", created_user.username, created_user.id)
        return {"id": created_user.id, "username": created_user.username}

    def get_user(self, user_id: int) -> Dict[str, Any]:
        """
        ID로 특정 사용자를 조회합니다. (비밀번호 제외)

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return {"id": user.id, "username": user.username}

    def authenticate(self, username: str, password: str) -> Dict[str, str]:
        """
        자격증명을 검증하고, 성공 시 인증 토큰을 발급합니다.

        Raises:
            AuthenticationError: 사용자가 없거나 비밀번호가 일치하지 않을 때.
        """
        if not isinstance(username, str) or not isinstance(password, str):
            raise AuthenticationError("Invalid username or password.")
        user = self.user_repo.find_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid username or password.")

        self._purge_expired_tokens()

        token = str(uuid.uuid4())
        expires_at = datetime.now() + self.token_ttl
        self._token_cache[token] = {
            'user_id': user.id,
            'username': user.username,
            'expires_at': expires_at
        }
        return {"token": token, "expires_at": expires_at.isoformat()}

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        인증 토큰의 유효성을 검증하고, 유효하면 토큰 데이터를 반환합니다.

        Raises:
            TokenInvalidError: 토큰을 찾을 수 없거나 만료되었을 때.
        """
        token_data = self._token_cache.get(token)
        if not token_data:
            raise TokenInvalidError("Token not found or invalid.")

        if datetime.now() > token_data['expires_at']:
            self._token_cache.pop(token, None)
            raise TokenInvalidError("Token has expired.")

        return token_data

    def revoke_token(self, token: str) -> bool:
        """토큰을 폐기합니다. (로그아웃)"""
        return self._token_cache.pop(token, None) is not None

    def _purge_expired_tokens(self):
        now = datetime.now()
        expired = [token for token, data in list(self._token_cache.items()) if now > data["expires_at"]]
        for token in expired:
            self._token_cache.pop(token, None)
        if expired:
            logger.debug("Purged %d expired token(s).", len(expired))
