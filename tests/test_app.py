# tests/test_app.py
import io
import json
from wsgiref.util import setup_testing_defaults

import pytest

from uws.app import create_app, build_compute_service, handle_exception
from uws.config import Settings
from uws.repositories.memory import InMemoryInstanceRepository
from uws.repositories.sqlalchemy import SqlalchemyInstanceRepository
from uws.services.exceptions import InstanceNotFoundError

# ===================================================================
#  WSGI 호출 헬퍼 및 Fixture
# ===================================================================

def call(app, method, path, body=None, token=None, raw_body=None):
    """WSGI 애플리케이션을 직접 호출하고 (상태 코드, JSON 본문)을 반환합니다."""
    environ = {}
    setup_testing_defaults(environ)
    payload = raw_body if raw_body is not None else (json.dumps(body).encode("utf-8") if body is not None else b"")
    environ.update({
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "CONTENT_LENGTH": str(len(payload)),
        "wsgi.input": io.BytesIO(payload),
    })
    if token:
        environ["HTTP_AUTHORIZATION"] = f"Bearer {token}"

    captured = {}
    def start_response(status, headers):
        captured["status"] = status
    response = b"".join(app(environ, start_response))
    return int(captured["status"].split()[0]), json.loads(response)


@pytest.fixture
def app(session_factory, compute_service):
    return create_app(session_factory=session_factory, compute_service=compute_service)


def register_and_login(app, username, password="pw-123"):
    status, _ = call(app, "POST", "/api/auth/register", {"username": username, "password": password})
    assert status == 201
    status, body = call(app, "POST", "/api/auth/login", {"username": username, "password": password})
    assert status == 201
    return body["token"]


@pytest.fixture
def token(app):
    return register_and_login(app, "alice")

# ===================================================================
#  인증(Auth) 엔드포인트
# ===================================================================
class TestAuthRoutes:
    def test_health(self, app):
        assert call(app, "GET", "/health") == (200, {"status": "ok"})

    def test_me_returns_current_user(self, app, token):
        status, body = call(app, "GET", "/api/auth/me", token=token)
        assert status == 200
        assert body["username"] == "alice"

    def test_duplicate_registration_is_rejected(self, app, token):
        status, body = call(app, "POST", "/api/auth/register", {"username": "alice", "password": "x"})
        assert status == 400
        assert "already exists" in body["error"]

    def test_login_with_wrong_password(self, app, token):
        status, _ = call(app, "POST", "/api/auth/login", {"username": "alice", "password": "nope"})
        assert status == 401

    def test_missing_token(self, app):
        status, _ = call(app, "GET", "/api/compute/instances")
        assert status == 401

    def test_register_with_non_string_password(self, app):
        status, _ = call(app, "POST", "/api/auth/register", {"username": "a", "password": 123})
        assert status == 400

    def test_login_with_non_string_password(self, app, token):
        status, _ = call(app, "POST", "/api/auth/login", {"username": "alice", "password": ["pw-123"]})
        assert status == 401

    def test_logout_revokes_token(self, app, token):
        assert call(app, "POST", "/api/auth/logout", token=token)[0] == 200
        assert call(app, "GET", "/api/auth/me", token=token)[0] == 401

# ===================================================================
#  컴퓨트 인스턴스 엔드포인트
# ===================================================================
class TestComputeRoutes:
    def test_instance_lifecycle_over_http(self, app, token, scheduler):
        """HTTP를 통해 생성 -> 실행 -> 정지 -> 삭제 흐름이 동작하는지 테스트합니다."""
        # 생성
        status, created = call(app, "POST", "/api/compute/instances",
                               {"name": "web-1", "type": "small"}, token=token)
        assert status == 201
        assert (created["cpu"], created["memory"], created["storage"], created["status"]) == (1, 2, 20, "starting")
        instance_url = f"/api/compute/instances/{created['id']}"

        # 목록
        status, body = call(app, "GET", "/api/compute/instances", token=token)
        assert status == 200
        assert isinstance(body, list)
        assert [i["id"] for i in body] == [created["id"]]

        # 5초 경과 후 running + metrics
        scheduler.advance(5)
        status, detail = call(app, "GET", instance_url, token=token)
        assert status == 200
        assert detail["status"] == "running"
        assert "metrics" in detail

        # 이미 실행 중인 인스턴스 시작 -> 400
        status, body = call(app, "POST", f"{instance_url}/start", token=token)
        assert status == 400
        assert body["error"] == "Instance is already running"

        # 정지
        status, body = call(app, "POST", f"{instance_url}/stop", token=token)
        assert (status, body["status"]) == (200, "stopping")

        # 재시작
        status, body = call(app, "POST", f"{instance_url}/restart", token=token)
        assert (status, body["status"]) == (200, "stopping")

        # 삭제 후 조회 -> 404
        status, body = call(app, "DELETE", instance_url, token=token)
        assert (status, body["message"]) == (200, "Instance deleted successfully")
        assert call(app, "GET", instance_url, token=token)[0] == 404

    def test_other_user_cannot_touch_instance(self, app, token):
        _, created = call(app, "POST", "/api/compute/instances",
                          {"name": "web-1", "instance_class": "medium"}, token=token)
        other_token = register_and_login(app, "mallory")

        status, body = call(app, "POST", f"/api/compute/instances/{created['id']}/stop", token=other_token)

        assert status == 400
        assert body["error"] == "Unauthorized"
        assert call(app, "GET", "/api/compute/instances", token=other_token)[1] == []

    def test_invalid_instance_class(self, app, token):
        status, _ = call(app, "POST", "/api/compute/instances", {"name": "x", "type": "huge"}, token=token)
        assert status == 400

    @pytest.mark.parametrize("instance_class", [{"a": 1}, ["small"]])
    def test_non_string_instance_class(self, app, token, instance_class):
        status, body = call(app, "POST", "/api/compute/instances", {"name": "x", "type": instance_class}, token=token)
        assert status == 400
        assert call(app, "GET", "/api/compute/instances", token=token)[1] == []

    def test_unknown_instance(self, app, token):
        status, body = call(app, "POST", "/api/compute/instances/missing/start", token=token)
        assert status == 404
        assert body["error"] == "Instance not found"

    def test_invalid_json_body(self, app, token):
        status, _ = call(app, "POST", "/api/compute/instances", token=token, raw_body=b"{not json")
        assert status == 400

    def test_unknown_route(self, app):
        assert call(app, "GET", "/api/nothing-here")[0] == 404

# ===================================================================
#  의존성 구성 / 오류 매핑
# ===================================================================

@pytest.mark.parametrize("store, repo_class", [
    ("memory", InMemoryInstanceRepository),
    ("sqlalchemy", SqlalchemyInstanceRepository),
])
def test_build_compute_service_selects_store(session_factory, store, repo_class):
    app_settings = Settings()
    app_settings.INSTANCE_STORE = store
    app_settings.CREATE_DELAY = 1.5

    service = build_compute_service(app_settings, session_factory)

    assert isinstance(service.instance_repo, repo_class)
    assert service.delays["create"] == 1.5
    service.shutdown()


def test_build_compute_service_rejects_unknown_store(session_factory):
    app_settings = Settings()
    app_settings.INSTANCE_STORE = "redis"

    with pytest.raises(ValueError):
        build_compute_service(app_settings, session_factory)


def test_handle_exception_maps_status_codes():
    assert handle_exception(InstanceNotFoundError("gone"))[0] == "404 Not Found"
    status, body = handle_exception(RuntimeError("kaboom"))
    assert status == "500 Internal Server Error"
    assert json.loads(body) == {"error": "kaboom"}
