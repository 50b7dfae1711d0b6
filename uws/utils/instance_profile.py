# uws/utils/instance_profile.py
import random

# 인스턴스 클래스별 리소스 프로필 (memory, storage 단위는 GB)
INSTANCE_CLASSES = {
    "small": {"cpu": 1, "memory": 2, "storage": 20},
    "medium": {"cpu": 2, "memory": 4, "storage": 50},
    "large": {"cpu": 4, "memory": 8, "storage": 100},
}

# 실행 중인 인스턴스의 가상 사용률 범위 (%)
METRIC_RANGES = {
    "cpu_usage": (10, 90),
    "memory_usage": (20, 90),
    "disk_usage": (10, 70),
}


def resolve_profile(instance_class):
    """
    인스턴스 클래스에 해당하는 리소스 프로필의 복사본을 반환합니다.
    지원하지 않는 클래스면 None을 반환합니다.
    """
    if not isinstance(instance_class, str):
        return None
    profile = INSTANCE_CLASSES.get(instance_class)
    return dict(profile) if profile else None


def generate_ip_address(rng=random):
    """'172.x.y.z' 형태의 IP 문자열을 만듭니다. 실제 할당이 아닌 표시용 값입니다."""
    return "172.{}.{}.{}".format(rng.randrange(255), rng.randrange(255), rng.randrange(255))


def generate_metrics(rng=random):
    """METRIC_RANGES 범위 안에서 CPU/메모리/디스크 사용률을 무작위로 생성합니다."""
    return {key: rng.uniform(low, high) for key, (low, high) in METRIC_RANGES.items()}
