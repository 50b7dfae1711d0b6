# uws/services/exceptions.py

# --- General Exceptions ---
class InstanceNotFoundError(Exception):
    """인스턴스를 찾을 수 없을 때"""
    pass

class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

# --- Ownership / State Exceptions ---
class InstanceAccessDeniedError(Exception):
    """다른 사용자가 소유한 인스턴스에 접근하려고 할 때"""
    pass

class InstanceAlreadyInStateError(Exception):
    """이미 실행 중인 인스턴스를 시작하거나, 이미 정지된 인스턴스를 정지하려고 할 때"""
    pass

# --- Creation/Validation Exceptions ---
class InvalidInstanceClassError(Exception):
    """지원하지 않는 인스턴스 클래스(small/medium/large 외)로 생성하려고 할 때"""
    pass

class InstanceValidationError(Exception):
    """인스턴스 이름, 리전 등 요청 값이 올바르지 않을 때"""
    pass

class UserCreationError(Exception):
    """사용자 생성 실패 시"""
    pass

# --- Auth Exceptions ---
class TokenInvalidError(Exception):
    """토큰이 유효하지 않거나 없을 때"""
    pass

class AuthenticationError(Exception):
    """사용자 자격 증명 실패 시"""
    pass
