# tests/utils/test_instance_profile.py
import random

from uws.utils.instance_profile import (
    INSTANCE_CLASSES, resolve_profile, generate_ip_address, generate_metrics
)


def test_resolve_profile_returns_copy():
    """반환된 프로필을 수정해도 정적 테이블은 바뀌지 않아야 합니다."""
    profile = resolve_profile("large")
    assert profile == {"cpu": 4, "memory": 8, "storage": 100}

    profile["cpu"] = 64
    assert INSTANCE_CLASSES["large"]["cpu"] == 4


def test_resolve_profile_unknown_class():
    assert resolve_profile("xlarge") is None
    assert resolve_profile(None) is None


def test_resolve_profile_non_string_class():
    assert resolve_profile(["small"]) is None
    assert resolve_profile({"a": 1}) is None


def test_generate_ip_address_is_deterministic_with_seed():
    ip_a = generate_ip_address(random.Random(42))
    ip_b = generate_ip_address(random.Random(42))

    assert ip_a == ip_b
    assert ip_a.startswith("172.")


def test_generate_metrics_stays_in_range():
    rng = random.Random(7)
    for _ in range(200):
        metrics = generate_metrics(rng)
        assert 10 <= metrics["cpu_usage"] <= 90
        assert 20 <= metrics["memory_usage"] <= 90
        assert 10 <= metrics["disk_usage"] <= 70
