# uws/app.py
from wsgiref.simple_server import make_server
import json
import logging
import re
import sys

from uws.config import settings as default_settings
from uws.database.database import SessionLocal, engine
from uws.database.db_init import initialize_db
from uws.logging_config import configure_logging
from uws.repositories.memory import InMemoryInstanceRepository
from uws.repositories.sqlalchemy import SqlalchemyInstanceRepository, SqlalchemyUserRepository
from uws.services.compute_service import ComputeService
from uws.services.identity_service import IdentityService
from uws.services.exceptions import *
from uws.utils.scheduler import ThreadingScheduler

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        data = json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object.")
    return data

def get_auth_token(environ):
    authorization = environ.get('HTTP_AUTHORIZATION', '')
    if authorization.startswith('Bearer '):
        return authorization[len('Bearer '):].strip()
    return environ.get('HTTP_X_AUTH_TOKEN')

def authorize_and_get_token_data(environ):
    auth_token = get_auth_token(environ)
    if not auth_token:
        raise TokenInvalidError("Missing 'Authorization: Bearer' or 'X-Auth-Token' header.")
    identity_service = environ['services']['identity']
    return identity_service.validate_token(auth_token)

def get_owner_id(environ):
    # 인스턴스 소유자 ID는 사용자 ID의 문자열 표현
    return str(authorize_and_get_token_data(environ)['user_id'])

def handle_exception(e):
    error_map = {
        TokenInvalidError: "401 Unauthorized",
        AuthenticationError: "401 Unauthorized",
        InstanceNotFoundError: "404 Not Found",
        UserNotFoundError: "404 Not Found",
        ValueError: "400 Bad Request",
        InvalidInstanceClassError: "400 Bad Request",
        InstanceValidationError: "400 Bad Request",
        InstanceAccessDeniedError: "400 Bad Request",
        InstanceAlreadyInStateError: "400 Bad Request",
        UserCreationError: "400 Bad Request",
    }
    status = error_map.get(type(e))
    if status is None:
        logger.exception("Unhandled error while processing request.")
        status = "500 Internal Server Error"
    return status, json.dumps({"error": str(e)})

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def build_compute_service(app_settings, session_factory):
    """설정(INSTANCE_STORE)에 따라 저장소를 고르고, 프로세스 전체에서 공유할 ComputeService를 만듭니다."""
    if app_settings.INSTANCE_STORE == "sqlalchemy":
        instance_repo = SqlalchemyInstanceRepository(session_factory)
    elif app_settings.INSTANCE_STORE == "memory":
        instance_repo = InMemoryInstanceRepository()
    else:
        raise ValueError(f"Unknown INSTANCE_STORE '{app_settings.INSTANCE_STORE}'.")
    return ComputeService(
        instance_repo,
        ThreadingScheduler(),
        delays=app_settings.lifecycle_delays(),
        default_region=app_settings.DEFAULT_REGION,
    )

def create_app(app_settings=None, session_factory=None, compute_service=None):
    """
    WSGI 애플리케이션을 생성합니다.

    ComputeService(저장소와 스케줄러 포함)는 여기서 한 번만 만들어져 모든 요청이 공유하고,
    DB 세션과 IdentityService는 요청마다 새로 생성합니다.
    """
    app_settings = app_settings or default_settings
    session_factory = session_factory or SessionLocal
    compute_service = compute_service or build_compute_service(app_settings, session_factory)

    def application(environ, start_response):
        db_session = session_factory()
        try:
            # 1. 의존성 생성 (Repositories -> Services)
            user_repo = SqlalchemyUserRepository(db_session)
            identity_service = IdentityService(user_repo, app_settings.TOKEN_TTL_MINUTES)

            # 2. 생성된 서비스 객체들을 environ을 통해 핸들러에 전달
            environ['services'] = {
                'compute': compute_service,
                'identity': identity_service
            }

            # 3. 라우팅 및 핸들러 실행
            path = environ.get("PATH_INFO", "")
            method = environ.get("REQUEST_METHOD", "")

            handler, path_args = None, []
            for route_method, pattern, route_handler in ROUTES:
                if method == route_method and (match := re.match(pattern, path)):
                    handler, path_args = route_handler, match.groups()
                    break

            if handler:
                status, response_body = handler(environ, *path_args)
            else:
                status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

        except Exception as e:
            status, response_body = handle_exception(e)
        finally:
            db_session.close()

        start_response(status, [("Content-Type", "application/json")])
        return [response_body.encode("utf-8")]

    return application

# --------------------------------------------------------------------------
## 핸들러 함수
# --------------------------------------------------------------------------

def health_handler(environ, *args):
    return '200 OK', json.dumps({"status": "ok"})

def register_handler(environ, *args):
    data = get_request_data(environ)
    user = environ['services']['identity'].create_user(data.get('username'), data.get('password'))
    return '201 Created', json.dumps(user)

def login_handler(environ, *args):
    data = get_request_data(environ)
    token = environ['services']['identity'].authenticate(data.get('username'), data.get('password'))
    return '201 Created', json.dumps(token)

def logout_handler(environ, *args):
    authorize_and_get_token_data(environ)
    environ['services']['identity'].revoke_token(get_auth_token(environ))
    return '200 OK', json.dumps({"message": "Logged out"})

def me_handler(environ, *args):
    token_data = authorize_and_get_token_data(environ)
    user = environ['services']['identity'].get_user(token_data['user_id'])
    return '200 OK', json.dumps(user)

def list_instances_handler(environ, *args):
    owner_id = get_owner_id(environ)
    instances = environ['services']['compute'].list_instances(owner_id)
    return '200 OK', json.dumps(instances)

def create_instance_handler(environ, *args):
    owner_id = get_owner_id(environ)
    data = get_request_data(environ)
    instance = environ['services']['compute'].create_instance(
        owner_id,
        name=data.get('name'),
        # 대시보드는 'type' 키를 사용
        instance_class=data.get('instance_class', data.get('type')),
        region=data.get('region'),
    )
    return '201 Created', json.dumps(instance)

def get_instance_handler(environ, instance_id):
    owner_id = get_owner_id(environ)
    instance = environ['services']['compute'].get_instance_detail(owner_id, instance_id)
    return '200 OK', json.dumps(instance)

def start_instance_handler(environ, instance_id):
    owner_id = get_owner_id(environ)
    return '200 OK', json.dumps(environ['services']['compute'].start_instance(owner_id, instance_id))

def stop_instance_handler(environ, instance_id):
    owner_id = get_owner_id(environ)
    return '200 OK', json.dumps(environ['services']['compute'].stop_instance(owner_id, instance_id))

def restart_instance_handler(environ, instance_id):
    owner_id = get_owner_id(environ)
    return '200 OK', json.dumps(environ['services']['compute'].restart_instance(owner_id, instance_id))

def delete_instance_handler(environ, instance_id):
    owner_id = get_owner_id(environ)
    return '200 OK', json.dumps(environ['services']['compute'].delete_instance(owner_id, instance_id))

ROUTES = [
    ('GET', r'^/health$', health_handler),
    ('POST', r'^/api/auth/register$', register_handler),
    ('POST', r'^/api/auth/login$', login_handler),
    ('POST', r'^/api/auth/logout$', logout_handler),
    ('GET', r'^/api/auth/me$', me_handler),
    ('GET', r'^/api/compute/instances$', list_instances_handler),
    ('POST', r'^/api/compute/instances$', create_instance_handler),
    ('GET', r'^/api/compute/instances/([^/]+)$', get_instance_handler),
    ('DELETE', r'^/api/compute/instances/([^/]+)$', delete_instance_handler),
    ('POST', r'^/api/compute/instances/([^/]+)/start$', start_instance_handler),
    ('POST', r'^/api/compute/instances/([^/]+)/stop$', stop_instance_handler),
    ('POST', r'^/api/compute/instances/([^/]+)/restart$', restart_instance_handler),
]

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

def main():
    configure_logging(default_settings.LOG_LEVEL)
    initialize_db(engine, SessionLocal)
    compute_service = build_compute_service(default_settings, SessionLocal)
    application = create_app(compute_service=compute_service)
    try:
        with make_server(default_settings.HOST, default_settings.PORT, application) as httpd:
            logger.info("Serving UWS backend on port %s...", default_settings.PORT)
            httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down.")
    except Exception:
        logger.exception("Error starting server")
        sys.exit(1)
    finally:
        compute_service.shutdown()

if __name__ == "__main__":
    main()
