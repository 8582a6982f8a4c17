import base64
import hashlib
import hmac
import json

import pytest

from filelink.core.security.policy import (
    FULL_ACCESS_CALLS,
    PolicyOptions,
    SecurityPolicy,
    decode_policy,
    encode_policy,
    sign_policy,
)


def test_security_policy_rejects_bad_inputs_fail_closed():
    with pytest.raises(ValueError):
        SecurityPolicy(policy="   ", signature="s")
    with pytest.raises(ValueError):
        SecurityPolicy(policy="p", signature="")
    with pytest.raises(TypeError):
        SecurityPolicy(policy=None, signature="s")


def test_security_policy_repr_hides_signature():
    assert "topsecret" not in repr(SecurityPolicy(policy="p", signature="topsecret"))


def test_policy_options_encode_service_field_names():
    opts = PolicyOptions(
        expiry=1700000000,
        calls=("read", "remove"),
        handle="abc",
        max_size=1024,
    )
    claims = json.loads(base64.urlsafe_b64decode(encode_policy(opts)))
    assert claims == {
        "expiry": 1700000000,
        "call": ["read", "remove"],
        "handle": "abc",
        "maxSize": 1024,
    }


def test_policy_options_validate():
    with pytest.raises(ValueError):
        PolicyOptions(expiry=1, calls=("teleport",))
    with pytest.raises(TypeError):
        PolicyOptions(expiry="soon")
    with pytest.raises(ValueError):
        PolicyOptions(expiry=1, min_size=10, max_size=5)


def test_sign_policy_is_hmac_sha256_hex_of_encoded_policy():
    opts = PolicyOptions.full_access(1700000000)
    sec = sign_policy(opts, "app-secret")

    expected = hmac.new(b"app-secret", sec.policy.encode("ascii"), hashlib.sha256).hexdigest()
    assert sec.signature == expected
    assert decode_policy(sec.policy)["call"] == list(FULL_ACCESS_CALLS)


def test_sign_policy_is_deterministic_and_secret_bound():
    opts = PolicyOptions(expiry=1700000000, calls=("read",))
    a = sign_policy(opts, "k1")
    b = sign_policy(opts, "k1")
    c = sign_policy(opts, "k2")
    assert a == b
    assert a.policy == c.policy
    assert a.signature != c.signature

    with pytest.raises(ValueError):
        sign_policy(opts, "")


def test_decode_policy_rejects_garbage():
    with pytest.raises(ValueError):
        decode_policy("!!!not-base64!!!")
    with pytest.raises(ValueError):
        decode_policy(base64.urlsafe_b64encode(b"[1, 2]").decode("ascii"))
